from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import NullPool
from app.core.config import settings
from app.core.exceptions import PersistenceError

# Создаем базовый класс для моделей
Base = declarative_base()

# SQLite connections are cheap; not pooling them keeps every event loop
# (uvicorn, test clients) on its own connection.
_engine_options = {}
if settings.DATABASE_URL.startswith("sqlite"):
    _engine_options["poolclass"] = NullPool

# Создаем движок SQLAlchemy для асинхронной работы
engine = create_async_engine(settings.DATABASE_URL, echo=settings.DATABASE_ECHO, **_engine_options)

# Создаем фабрику сессий
AsyncSessionLocal = sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False
)

# Функция для получения сессии БД
async def get_db() -> AsyncGenerator[AsyncSession, None]:
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


@asynccontextmanager
async def session_scope() -> AsyncIterator[AsyncSession]:
    """Unit of work for code running outside a request (socket handlers).

    Store failures surface as ``PersistenceError`` with the original cause
    chained; nothing is retried.
    """
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except SQLAlchemyError as exc:
            await session.rollback()
            raise PersistenceError("Database operation failed") from exc
