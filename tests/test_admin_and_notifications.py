import asyncio
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, patch

import pytest

from flashquiz.core.dependencies import get_notification_repository, get_user_repository
from flashquiz.core.errors import StoreError
from flashquiz.core.security import get_current_actor
from flashquiz.main import app
from flashquiz.notifications.inactivity import (
    INACTIVITY_KIND,
    InactivitySweepTask,
    broadcast_inactive_users,
    inactivity_sweep_loop,
)
from tests.fakes import actor_for


@pytest.fixture
def people(user_repo):
    now = datetime.utcnow()
    return {
        "admin": user_repo.add({"username": "root", "email": "root@example.com", "role": "admin",
                                "created_at": now, "last_activity": now}),
        "active": user_repo.add({"username": "active", "email": "active@example.com", "role": "user",
                                 "created_at": now, "last_activity": now - timedelta(days=1)}),
        "idle": user_repo.add({"username": "idle", "email": "idle@example.com", "role": "user",
                               "created_at": now, "last_activity": now - timedelta(days=30)}),
    }


@pytest.fixture
def as_user(client, user_repo, notification_repo):
    def _login(user):
        app.dependency_overrides[get_current_actor] = lambda: actor_for(user)
        app.dependency_overrides[get_user_repository] = lambda: user_repo
        app.dependency_overrides[get_notification_repository] = lambda: notification_repo
        return client

    return _login


class TestInactivitySweep:
    async def test_notifies_only_inactive_users(self, user_repo, notification_repo, people):
        created = await broadcast_inactive_users(user_repo, notification_repo, days=7)

        assert created == 1
        [notification] = notification_repo.notifications
        assert notification["user_id"] == people["idle"]["_id"]
        assert notification["kind"] == INACTIVITY_KIND
        assert notification["read"] is False

    async def test_no_duplicate_while_unread(self, user_repo, notification_repo, people):
        await broadcast_inactive_users(user_repo, notification_repo, days=7)
        created = await broadcast_inactive_users(user_repo, notification_repo, days=7)

        assert created == 0
        assert len(notification_repo.notifications) == 1

    async def test_new_notification_after_read(self, user_repo, notification_repo, people):
        await broadcast_inactive_users(user_repo, notification_repo, days=7)
        notification_repo.notifications[0]["read"] = True

        created = await broadcast_inactive_users(user_repo, notification_repo, days=7)

        assert created == 1

    async def test_loop_survives_store_failure(self):
        calls = []

        async def failing_broadcast(*args):
            calls.append(args)
            raise StoreError()

        sleep = AsyncMock(side_effect=[None, RuntimeError("stop")])
        with patch("flashquiz.notifications.inactivity.broadcast_inactive_users", failing_broadcast), \
                patch("flashquiz.notifications.inactivity.asyncio.sleep", sleep):
            with pytest.raises(RuntimeError):
                await inactivity_sweep_loop(db=object(), interval_seconds=60, days=7)

        assert len(calls) == 2
        sleep.assert_awaited_with(60)

    async def test_loop_survives_unexpected_error(self):
        broadcast = AsyncMock(side_effect=[KeyError("_id"), 3])
        sleep = AsyncMock(side_effect=[None, RuntimeError("stop")])
        with patch("flashquiz.notifications.inactivity.broadcast_inactive_users", broadcast), \
                patch("flashquiz.notifications.inactivity.asyncio.sleep", sleep):
            with pytest.raises(RuntimeError):
                await inactivity_sweep_loop(db=object(), interval_seconds=60, days=7)

        assert broadcast.await_count == 2

    async def test_stop_waits_for_cancelled_task(self):
        started = asyncio.Event()

        async def endless(*args):
            started.set()
            await asyncio.Event().wait()

        sweep = InactivitySweepTask()
        with patch("flashquiz.notifications.inactivity.inactivity_sweep_loop", endless):
            sweep.start(db=object(), interval_seconds=60, days=7)
            await started.wait()
            task = sweep.task
            assert sweep.running

            await sweep.stop()

        assert task.cancelled()
        assert sweep.task is None
        assert not sweep.running


class TestAdminRoutes:
    def test_users_list_is_paginated_without_hashes(self, as_user, people, user_repo):
        user_repo.users[people["idle"]["_id"]]["hashed_password"] = "secret-hash"
        client = as_user(people["admin"])

        response = client.get("/admin/users", params={"page": 1, "limit": 2})

        assert response.status_code == 200
        body = response.json()
        assert len(body["data"]) == 2
        assert body["meta"]["pagination"]["total"] == 3
        assert "secret-hash" not in response.text

    def test_inactive_users(self, as_user, people):
        client = as_user(people["admin"])

        response = client.get("/admin/users/inactive", params={"days": 7})

        emails = [u["email"] for u in response.json()["data"]["users"]]
        assert emails == ["idle@example.com"]

    def test_broadcast(self, as_user, people, notification_repo):
        client = as_user(people["admin"])

        response = client.post("/admin/notifications/broadcast-inactive")

        assert response.status_code == 200
        assert response.json()["data"] == {"created": 1}
        assert len(notification_repo.notifications) == 1

    def test_regular_user_is_forbidden(self, as_user, people):
        client = as_user(people["active"])

        response = client.get("/admin/users")

        assert response.status_code == 403
        assert response.json()["details"]["kind"] == "forbidden"


class TestUserNotifications:
    def test_list_and_mark_read(self, as_user, people):
        as_user(people["admin"]).post("/admin/notifications/broadcast-inactive")
        client = as_user(people["idle"])

        listing = client.get("/users/me/notifications", params={"unread_only": True})
        [notification] = listing.json()["data"]
        assert notification["kind"] == "inactivity"

        marked = client.put(f"/users/me/notifications/{notification['id']}/read")
        assert marked.status_code == 200
        assert marked.json()["data"]["read"] is True

        unread = client.get("/users/me/notifications", params={"unread_only": True})
        assert unread.json()["data"] == []

    def test_cannot_read_foreign_notification(self, as_user, people, notification_repo):
        as_user(people["admin"]).post("/admin/notifications/broadcast-inactive")
        foreign_id = str(notification_repo.notifications[0]["_id"])
        client = as_user(people["active"])

        response = client.put(f"/users/me/notifications/{foreign_id}/read")

        assert response.status_code == 404
        assert response.json()["details"]["kind"] == "not_found"


class TestAdminUserManagement:
    def test_admin_promotes_user(self, as_user, people, user_repo):
        client = as_user(people["admin"])
        user_id = str(people["active"]["_id"])

        response = client.put(f"/admin/users/{user_id}", json={"role": "admin"})

        assert response.status_code == 200
        assert response.json()["data"]["role"] == "admin"
        assert user_repo.users[people["active"]["_id"]]["role"] == "admin"

    def test_unknown_role_is_rejected(self, as_user, people):
        client = as_user(people["admin"])
        response = client.put(f"/admin/users/{people['active']['_id']}", json={"role": "owner"})
        assert response.status_code == 422

    def test_admin_deletes_user(self, as_user, people, user_repo):
        client = as_user(people["admin"])

        response = client.delete(f"/admin/users/{people['idle']['_id']}")

        assert response.status_code == 200
        assert people["idle"]["_id"] not in user_repo.users

    def test_admin_cannot_delete_self(self, as_user, people, user_repo):
        client = as_user(people["admin"])

        response = client.delete(f"/admin/users/{people['admin']['_id']}")

        assert response.status_code == 409
        assert people["admin"]["_id"] in user_repo.users

    def test_delete_unknown_user_is_404(self, as_user, people):
        client = as_user(people["admin"])
        response = client.delete("/admin/users/not-an-id")
        assert response.status_code == 404
        assert response.json()["details"]["kind"] == "user_not_found"

    def test_regular_user_cannot_manage_users(self, as_user, people, user_repo):
        client = as_user(people["active"])

        response = client.delete(f"/admin/users/{people['idle']['_id']}")

        assert response.status_code == 403
        assert people["idle"]["_id"] in user_repo.users
