import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.exceptions import AuthError, ChatError
from app.api.v1.api import api_router
from app.websockets.bridge import chat_events
from app.websockets.chat_ws import dispatcher, router as chat_ws_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # HTTP-created messages and receipts reach sockets through the dispatcher
    chat_events.attach(dispatcher.handle_fact)
    try:
        yield
    finally:
        chat_events.detach()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)


@app.exception_handler(ChatError)
async def chat_error_handler(_request: Request, exc: ChatError):
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthError) else None
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message}, headers=headers)


@app.exception_handler(SQLAlchemyError)
async def database_error_handler(request: Request, exc: SQLAlchemyError):
    logger.error("Database failure on %s %s", request.method, request.url.path, exc_info=exc)
    return JSONResponse(status_code=500, content={"detail": "Database operation failed"})


# Настройка CORS
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# Подключаем роутеры API v1
app.include_router(api_router, prefix=settings.API_V1_STR)

# Подключаем роутеры БЕЗ префикса для обратной совместимости
app.include_router(api_router, prefix="")

# Вебсокеты чата
app.include_router(chat_ws_router)

# Загруженные картинки сообщений
settings.MEDIA_DIR.mkdir(parents=True, exist_ok=True)
app.mount(settings.MEDIA_URL, StaticFiles(directory=settings.MEDIA_DIR), name="media")
