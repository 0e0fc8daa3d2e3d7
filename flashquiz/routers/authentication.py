from datetime import datetime

from fastapi import APIRouter, Depends, HTTPException, Request

from flashquiz.core.config import settings
from flashquiz.core.dependencies import get_user_repository
from flashquiz.core.errors import Conflict
from flashquiz.core.response import success
from flashquiz.core.security import (
    create_access_token,
    get_current_actor,
    get_ip,
    get_revocation_store,
    hash_password,
    verify_password,
)
from flashquiz.logging import get_logger, get_security_logger, LogSection, LogSubsection
from flashquiz.schemas.auth_schemas import LoginRequest, RegisterRequest
from flashquiz.schemas.user_schemas import serialize_actor, serialize_user

logger = get_logger(__name__)
security_logger = get_security_logger()
router = APIRouter()


# -------------------------
# REGISTER
# -------------------------
@router.post("/register")
async def register(data: RegisterRequest, request: Request, users=Depends(get_user_repository)):
    ip = get_ip(request)
    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.REGISTER_ATTEMPT,
        message=f"Попытка регистрации {data.email} с IP {ip}"
    )

    if await users.get_by_email(data.email):
        logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.REGISTER_FAILED,
            message=f"Регистрация отклонена: email {data.email} уже занят (IP {ip})"
        )
        raise Conflict("Пользователь с таким email уже существует", details={"field": "email"})

    now = datetime.utcnow()
    user = await users.create({
        "username": data.username,
        "email": data.email,
        "hashed_password": hash_password(data.password),
        "role": "user",
        "created_at": now,
        "last_activity": now,
    })

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.REGISTER_SUCCESS,
        message=f"Зарегистрирован пользователь {data.email} с IP {ip}",
        user_id=user["_id"]
    )
    return success(data=serialize_user(user), message="Регистрация прошла успешно", status_code=201)


# -------------------------
# LOGIN
# -------------------------
@router.post("/login")
async def login(data: LoginRequest, request: Request, users=Depends(get_user_repository)):
    ip = get_ip(request)
    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGIN_ATTEMPT,
        message=f"Попытка входа с IP {ip} - логин: {data.email[:10]}..."
    )

    user = await users.get_by_email(data.email)
    if not user or not verify_password(data.password, user["hashed_password"]):
        security_logger.warning(
            section=LogSection.AUTH,
            subsection=LogSubsection.AUTH.LOGIN_FAILED,
            message=f"Неудачный вход для {data.email[:10]}... с IP {ip}",
            ip_address=ip
        )
        raise HTTPException(status_code=401, detail={"message": "Неправильный email или пароль"})

    role = user.get("role", "user")
    token, expires_at, _ = create_access_token({"sub": str(user["_id"]), "role": role})
    await users.touch_activity(user["_id"])

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGIN_SUCCESS,
        message=f"Успешный вход пользователя {user.get('email')} с ролью {role} с IP {ip}",
        user_id=user["_id"]
    )

    response = success(
        data={
            "access_token": token,
            "token_type": "bearer",
            "expires_at": expires_at.isoformat() + "Z",
            "user": serialize_user(user),
        },
        message="Вход выполнен"
    )
    response.set_cookie(
        key="access_token",
        value=token,
        httponly=True,
        secure=True,
        samesite="None",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        path="/"
    )
    return response


# -------------------------
# LOGOUT
# -------------------------
@router.post("/logout")
async def logout(actor: dict = Depends(get_current_actor), revocations=Depends(get_revocation_store)):
    await revocations.revoke(actor["jti"], actor["exp"])

    logger.info(
        section=LogSection.AUTH,
        subsection=LogSubsection.AUTH.LOGOUT,
        message=f"Пользователь {actor['email']} вышел, токен отозван",
        user_id=actor["id"]
    )

    response = success(message="Выход выполнен")
    response.delete_cookie("access_token", path="/")
    return response


@router.get("/me")
async def me(actor: dict = Depends(get_current_actor)):
    return success(data=serialize_actor(actor))
