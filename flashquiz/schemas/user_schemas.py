import re
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from flashquiz.schemas.auth_schemas import validate_email, validate_password


class UserUpdate(BaseModel):
    """Изменение своего профиля; передаются только меняемые поля"""
    username: Optional[str] = Field(None, min_length=2, max_length=50)
    email: Optional[str] = None
    password: Optional[str] = Field(None, max_length=128)

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not re.fullmatch(r"[0-9A-Za-zА-Яа-яЁё_.\- ]{2,50}", v):
            raise ValueError("Имя пользователя: 2-50 символов, буквы, цифры, пробел, _ . -")
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v): return v if v is None else validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_field(cls, v): return v if v is None else validate_password(v)


class AdminUserUpdate(UserUpdate):
    role: Optional[Literal["user", "admin"]] = None




def _iso(value) -> Optional[str]:
    return value.isoformat() if value else None


def serialize_user(user: dict) -> dict:
    """Публичное представление пользователя (без хэша пароля)"""
    return {
        "id": str(user["_id"]),
        "username": user.get("username"),
        "email": user.get("email"),
        "role": user.get("role", "user"),
        "created_at": _iso(user.get("created_at")),
        "last_activity": _iso(user.get("last_activity")),
    }


def serialize_actor(actor: dict) -> dict:
    return {
        "id": str(actor["id"]),
        "username": actor.get("username"),
        "email": actor.get("email"),
        "role": actor.get("role"),
        "created_at": _iso(actor.get("created_at")),
    }


def serialize_notification(notification: dict) -> dict:
    return {
        "id": str(notification["_id"]),
        "kind": notification.get("kind"),
        "message": notification.get("message"),
        "read": notification.get("read", False),
        "created_at": _iso(notification.get("created_at")),
        "read_at": _iso(notification.get("read_at")),
    }
