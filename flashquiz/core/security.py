import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt
from fastapi import Depends, HTTPException, Request, status
from passlib.context import CryptContext

from flashquiz.core.config import settings
from flashquiz.core.dependencies import get_user_repository
from flashquiz.core.errors import Forbidden
from flashquiz.core.redis_client import get_auth_redis_connection
from flashquiz.logging import get_logger, get_security_logger, LogSection, LogSubsection

# Настройка логгера
logger = get_logger(__name__)
security_logger = get_security_logger()

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_password(plain_password: str) -> str:
    return pwd_context.hash(plain_password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_ip(request: Request) -> str:
    forwarded = request.headers.get("X-Forwarded-For")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def get_user_agent(request: Request) -> str:
    return request.headers.get("User-Agent", "unknown")


def create_access_token(data: dict, expires_delta: timedelta = None) -> tuple[str, datetime, str]:
    """
    Создает JWT с полями sub, role, jti, exp.

    Returns:
        (token, expires_at, jti)
    """
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    jti = uuid.uuid4().hex
    to_encode = data.copy()
    to_encode.update({"exp": expire, "jti": jti})
    token = jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)

    user_id = data.get("sub", "неизвестен")
    role = data.get("role", "неизвестна")
    expire_str = expire.strftime("%H:%M:%S %d.%m.%Y")
    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.TOKEN_CREATE,
        message=f"JWT токен успешно создан для пользователя {user_id} с ролью {role} - действует до {expire_str}"
    )

    return token, expire, jti


def decode_token(token: str) -> dict:
    return jwt.decode(
        token,
        settings.SECRET_KEY,
        algorithms=[settings.ALGORITHM],
        options={"require": ["exp", "sub", "jti"]}
    )


def extract_token(request: Request) -> Optional[str]:
    """Токен берется из заголовка Authorization: Bearer или из cookie access_token"""
    auth_header = request.headers.get("Authorization")
    if auth_header:
        scheme, _, credentials = auth_header.partition(" ")
        if scheme.lower() == "bearer" and credentials.strip():
            return credentials.strip()
    return request.cookies.get("access_token")


class TokenRevocationStore:
    """
    Отозванные токены (jti) в Redis.

    Ключ живет ровно столько, сколько оставалось жить токену,
    после этого токен и так не пройдет проверку exp.
    """

    key_prefix = "revoked_jti:"

    def __init__(self, redis):
        self.redis = redis

    async def revoke(self, jti: str, expires_at: datetime):
        ttl = int((expires_at - datetime.utcnow()).total_seconds())
        if ttl <= 0:
            return
        await self.redis.set(f"{self.key_prefix}{jti}", "1", ex=ttl)

    async def is_revoked(self, jti: str) -> bool:
        return bool(await self.redis.exists(f"{self.key_prefix}{jti}"))


async def get_revocation_store(redis=Depends(get_auth_redis_connection)) -> TokenRevocationStore:
    return TokenRevocationStore(redis)


def _unauthorized(message: str, hint: Optional[str] = None) -> HTTPException:
    detail = {"message": message}
    if hint:
        detail["hint"] = hint
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"}
    )


async def get_current_actor(
    request: Request,
    users=Depends(get_user_repository),
    revocations: TokenRevocationStore = Depends(get_revocation_store)
) -> dict:
    """
    Достаёт токен, валидирует его и возвращает словарь с информацией
    о текущем пользователе. Заодно обновляет last_activity.
    """
    ip = get_ip(request)
    token = extract_token(request)
    if not token:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_MISSING,
            message=f"Отсутствует токен при запросе {request.url.path} с IP {ip}"
        )
        raise _unauthorized("Не передан токен", "Добавьте заголовок Authorization: Bearer или cookie access_token")

    try:
        payload = decode_token(token)
    except jwt.ExpiredSignatureError:
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_EXPIRED,
            message=f"Попытка использования просроченного токена с IP {ip}"
        )
        raise _unauthorized("Срок действия токена истёк", "Войдите снова")
    except jwt.PyJWTError:
        security_logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_INVALID,
            message=f"Ошибка декодирования JWT с IP {ip}",
            ip_address=ip,
            user_agent=get_user_agent(request)
        )
        raise _unauthorized("Ошибка валидации токена", "Невозможно декодировать токен")

    if await revocations.is_revoked(payload["jti"]):
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.TOKEN_REVOKED,
            message=f"Попытка использования отозванного токена пользователем {payload['sub']} с IP {ip}"
        )
        raise _unauthorized("Токен отозван", "Войдите снова")

    user = await users.get_by_id(payload["sub"])
    if not user:
        logger.error(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.USER_NOT_FOUND,
            message=f"Пользователь {payload['sub']} не найден в БД при валидации токена с IP {ip}"
        )
        raise _unauthorized("Пользователь не найден")

    await users.touch_activity(user["_id"])

    return {
        "type": "user",
        "id": user["_id"],
        "role": user.get("role", "user"),
        "username": user.get("username"),
        "email": user.get("email"),
        "jti": payload["jti"],
        "exp": datetime.fromtimestamp(payload["exp"], timezone.utc).replace(tzinfo=None),
        "created_at": user.get("created_at"),
    }


async def require_admin(request: Request, actor: dict = Depends(get_current_actor)) -> dict:
    if actor.get("role") != "admin":
        security_logger.warning(
            section=LogSection.SECURITY,
            subsection=LogSubsection.SECURITY.ACCESS_DENIED,
            message=f"Пользователь {actor['id']} с ролью {actor.get('role')} запросил {request.url.path}",
            user_id=actor["id"],
            ip_address=get_ip(request)
        )
        raise Forbidden("Доступ только для администраторов")
    return actor


def ensure_self_or_admin(actor: dict, user_id: str):
    """Данные пользователя доступны только ему самому и администраторам"""
    if actor.get("role") == "admin" or str(actor["id"]) == str(user_id):
        return
    security_logger.warning(
        section=LogSection.SECURITY,
        subsection=LogSubsection.SECURITY.UNAUTHORIZED_ACCESS,
        message=f"Пользователь {actor['id']} пытался получить данные пользователя {user_id}",
        user_id=actor["id"]
    )
    raise Forbidden("Нет доступа к данным другого пользователя")
