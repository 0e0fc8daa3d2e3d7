import os
import tempfile

import pytest

# Окружение должно быть готово до импорта flashquiz (Settings читается при импорте)
_LOG_DIR = tempfile.mkdtemp(prefix="flashquiz-logs-")
os.environ.setdefault("SECRET_KEY", "test-secret-key-for-flashquiz-0123456789abcdef")
os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("MONGO_DB_NAME", "flashquiz_test")
os.environ.setdefault("LOG_FILE", os.path.join(_LOG_DIR, "application.log"))
os.environ.setdefault("SECURITY_LOG_FILE", os.path.join(_LOG_DIR, "security.log"))
os.environ.setdefault("CONSOLE_LOGGING", "false")
os.environ.setdefault("RABBITMQ_LOGGING", "false")
os.environ.setdefault("INACTIVITY_SWEEP_ENABLED", "false")

from fastapi.testclient import TestClient  # noqa: E402

from flashquiz.main import app  # noqa: E402
from tests.fakes import (  # noqa: E402
    FakeNotificationRepository,
    FakeRedis,
    FakeUserRepository,
    InMemoryQuizStore,
)


@pytest.fixture
def store():
    return InMemoryQuizStore()


@pytest.fixture
def geography(store):
    """Категория Geography: два вопроса с ключами Paris и Tokyo"""
    user = store.add_user("alice")
    category = store.add_category("Geography", created_by=user["_id"])
    q1 = store.add_question(category, "Capital of France?", "Paris")
    q2 = store.add_question(category, "Capital of Japan?", "Tokyo")
    return user, category, q1, q2


@pytest.fixture
def user_repo():
    return FakeUserRepository()


@pytest.fixture
def notification_repo():
    return FakeNotificationRepository()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def client():
    # Без контекстного менеджера startup не запускается: MongoDB и Redis не нужны
    yield TestClient(app)
    app.dependency_overrides.clear()

