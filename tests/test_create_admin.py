import pytest
from pydantic import ValidationError

from flashquiz.admin.create_admin import create_admin
from flashquiz.core.errors import Conflict
from flashquiz.core.security import verify_password


async def test_creates_admin_with_hashed_password(user_repo):
    admin = await create_admin(user_repo, "root", "Root@Example.com", "Str0ng!pass")

    assert admin["role"] == "admin"
    assert admin["email"] == "root@example.com"
    assert verify_password("Str0ng!pass", admin["hashed_password"])


async def test_weak_password_is_rejected(user_repo):
    with pytest.raises(ValidationError):
        await create_admin(user_repo, "root", "root@example.com", "short")
    assert user_repo.users == {}


async def test_existing_email_is_conflict(user_repo):
    await create_admin(user_repo, "root", "root@example.com", "Str0ng!pass")
    with pytest.raises(Conflict):
        await create_admin(user_repo, "root2", "root@example.com", "Str0ng!pass")
