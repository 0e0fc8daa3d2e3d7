import asyncio
from datetime import datetime
from getpass import getpass

from pydantic import ValidationError as PydanticValidationError

from flashquiz.core.errors import Conflict
from flashquiz.core.security import hash_password
from flashquiz.db.repositories import UserRepository
from flashquiz.logging import get_logger, LogSection, LogSubsection
from flashquiz.schemas.auth_schemas import RegisterRequest

logger = get_logger(__name__)


async def create_admin(users: UserRepository, username: str, email: str, password: str) -> dict:
    """Создает пользователя с ролью admin; данные проверяются теми же правилами, что и при регистрации"""
    data = RegisterRequest(username=username, email=email, password=password, confirm_password=password)
    now = datetime.utcnow()

    admin = await users.create({
        "username": data.username,
        "email": data.email,
        "hashed_password": hash_password(data.password),
        "role": "admin",
        "created_at": now,
        "last_activity": now,
    })

    logger.info(
        section=LogSection.ADMIN,
        subsection=LogSubsection.ADMIN.CREATE_ADMIN,
        message=f"Создан администратор {data.email}",
        user_id=admin["_id"]
    )
    return admin


async def main():
    from flashquiz.db.database import db

    username = input("Имя пользователя: ")
    email = input("Email: ")
    password = getpass("Пароль: ")

    try:
        await create_admin(UserRepository(db), username, email, password)
    except PydanticValidationError as e:
        for err in e.errors():
            print(f"Ошибка: {err['msg']}")
        return
    except Conflict as e:
        print(f"Ошибка: {e.message}")
        return

    print("✅ Администратор создан")


if __name__ == "__main__":
    asyncio.run(main())
