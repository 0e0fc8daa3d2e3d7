# flashquiz/core/config.py

from typing import List, Optional
from pydantic_settings import BaseSettings, SettingsConfigDict
from dotenv import load_dotenv

# Загружаем переменные окружения из .env
load_dotenv()


class Settings(BaseSettings):
    # Настройки MongoDB
    MONGO_URI: str = "mongodb://localhost:27017"
    MONGO_DB_NAME: str = "flashquiz"

    # Настройки безопасности / JWT
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Redis для отозванных токенов
    REDIS_HOST: str = "localhost"
    REDIS_PORT: int = 6379
    REDIS_PASSWORD: Optional[str] = None
    REDIS_AUTH_DB: int = 0

    # Уведомления неактивным пользователям (раньше cron каждые 30 минут)
    INACTIVITY_DAYS: int = 7
    INACTIVITY_SWEEP_SECONDS: int = 1800
    INACTIVITY_SWEEP_ENABLED: bool = True

    CORS_ORIGINS: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Пагинация списков
    DEFAULT_PAGE_SIZE: int = 10
    MAX_PAGE_SIZE: int = 100

    # Переменные логирования читает setup_application_logging, здесь их игнорируем
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")


# Единый экземпляр настроек для всего проекта
settings = Settings()
