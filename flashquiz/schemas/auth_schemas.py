from pydantic import BaseModel, Field, field_validator, model_validator
import re


def validate_email(value: str) -> str:
    value = value.strip().lower()
    if len(value) > 123:
        raise ValueError("Email не должен превышать 123 символа")
    # локальная часть, '@', домен хотя бы с одной точкой
    pattern = r'^[a-z0-9._%+\-]+@[a-z0-9\-]+(\.[a-z0-9\-]+)+$'
    if not re.fullmatch(pattern, value):
        raise ValueError("Email должен быть валидного формата")
    return value


def validate_password(value: str) -> str:
    if len(value) < 8:
        raise ValueError("Пароль должен содержать минимум 8 символов")
    if not re.search(r"[A-Z]", value):
        raise ValueError("Пароль должен содержать хотя бы одну заглавную букву")
    if not re.search(r"[a-z]", value):
        raise ValueError("Пароль должен содержать хотя бы одну строчную букву")
    if not re.search(r"\d", value):
        raise ValueError("Пароль должен содержать хотя бы одну цифру")
    if not re.search(r"[^A-Za-z0-9]", value):
        raise ValueError("Пароль должен содержать хотя бы один специальный символ")
    return value


class RegisterRequest(BaseModel):
    username: str = Field(..., min_length=2, max_length=50)
    email: str
    password: str = Field(..., max_length=128)
    confirm_password: str

    @field_validator("username")
    @classmethod
    def validate_username(cls, v):
        v = v.strip()
        if not re.fullmatch(r"[0-9A-Za-zА-Яа-яЁё_.\- ]{2,50}", v):
            raise ValueError("Имя пользователя: 2-50 символов, буквы, цифры, пробел, _ . -")
        return v

    @field_validator("email")
    @classmethod
    def validate_email_field(cls, v): return validate_email(v)

    @field_validator("password")
    @classmethod
    def validate_password_field(cls, v): return validate_password(v)

    @model_validator(mode="after")
    def passwords_match(self):
        if self.password != self.confirm_password:
            raise ValueError("Пароли не совпадают")
        return self


class LoginRequest(BaseModel):
    email: str
    password: str = Field(..., min_length=1, max_length=128)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v): return v.strip().lower()
