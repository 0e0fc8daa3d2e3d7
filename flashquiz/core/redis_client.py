import redis.asyncio as redis
from typing import Optional

from flashquiz.core.config import settings
from flashquiz.logging import get_logger, LogSection, LogSubsection

logger = get_logger(__name__)


class AuthRedisClient:
    """
    Асинхронный клиент Redis для данных аутентификации (отозванные токены).
    Подключается к выделенной БД REDIS_AUTH_DB.
    """
    _redis: Optional[redis.Redis] = None

    @classmethod
    async def connect(cls):
        """
        Устанавливает и проверяет соединение с Redis.
        """
        if cls._redis is None:
            try:
                cls._redis = redis.Redis(
                    host=settings.REDIS_HOST,
                    port=settings.REDIS_PORT,
                    password=settings.REDIS_PASSWORD,
                    db=settings.REDIS_AUTH_DB,
                    decode_responses=True,
                    socket_connect_timeout=2,
                    health_check_interval=30
                )
                await cls._redis.ping()
                logger.info(
                    section=LogSection.REDIS,
                    subsection=LogSubsection.REDIS.CONNECTION,
                    message=f"Подключение к Redis (БД {settings.REDIS_AUTH_DB}) установлено"
                )
            except redis.ConnectionError as e:
                logger.error(
                    section=LogSection.REDIS,
                    subsection=LogSubsection.REDIS.ERROR,
                    message=f"Ошибка подключения к Redis: {e}"
                )
                cls._redis = None
                raise

    @classmethod
    async def disconnect(cls):
        """Закрывает соединение с Redis."""
        if cls._redis:
            await cls._redis.aclose()
            cls._redis = None
            logger.info(
                section=LogSection.REDIS,
                subsection=LogSubsection.REDIS.DISCONNECTION,
                message="Соединение с Redis закрыто"
            )

    @classmethod
    async def get_connection(cls) -> redis.Redis:
        """
        Возвращает существующее соединение с Redis.
        Если соединения нет, создает его.
        """
        if cls._redis is None:
            await cls.connect()
        return cls._redis


# Глобальный экземпляр клиента
auth_redis_client = AuthRedisClient()


async def get_auth_redis_connection() -> redis.Redis:
    """Dependency для получения соединения с Redis."""
    return await auth_redis_client.get_connection()
