from pydantic_settings import BaseSettings
from pathlib import Path
from typing import List


class Settings(BaseSettings):
    # Project
    PROJECT_NAME: str = "Campus Market API"
    VERSION: str = "1.0.0"
    API_V1_STR: str = "/api/v1"

    # Paths
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    DATA_DIR: Path = BASE_DIR / "data"

    # Server
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = 4001
    LOG_LEVEL: str = "INFO"

    # Database
    DATABASE_URL: str = f"sqlite+aiosqlite:///{DATA_DIR}/app.db"
    DATABASE_ECHO: bool = False

    # Security
    SECRET_KEY: str = "your-secret-key-here"
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Socket handshake: "bearer" (header / query / first frame) or "cookie"
    SOCKET_AUTH_MODE: str = "bearer"
    AUTH_COOKIE_NAME: str = "access_token"

    # CORS
    BACKEND_CORS_ORIGINS: List[str] = ["*"]

    # Chat
    MESSAGE_MAX_LENGTH: int = 2000
    NOTIFICATION_PREVIEW_LENGTH: int = 50

    # Image uploads
    MEDIA_DIR: Path = DATA_DIR / "media"
    MEDIA_URL: str = "/media"
    MAX_IMAGE_SIZE: int = 5 * 1024 * 1024
    MAX_IMAGES_PER_MESSAGE: int = 10

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


# Создаем экземпляр настроек
settings = Settings()
