from datetime import datetime, timedelta

from fastapi import APIRouter, Depends, Query

from flashquiz.core.config import settings
from flashquiz.core.dependencies import get_notification_repository, get_user_repository
from flashquiz.core.errors import Conflict
from flashquiz.core.response import make_pagination, success
from flashquiz.core.security import require_admin
from flashquiz.logging import get_logger, LogSection, LogSubsection
from flashquiz.notifications.inactivity import broadcast_inactive_users
from flashquiz.routers.pagination import PageParams
from flashquiz.routers.user_router import delete_user_account, update_user_account
from flashquiz.schemas.user_schemas import AdminUserUpdate, serialize_user

logger = get_logger(__name__)
router = APIRouter()


@router.get("/users")
async def list_users(
    params: PageParams = Depends(),
    admin: dict = Depends(require_admin),
    users=Depends(get_user_repository)
):
    docs, total = await users.list_users(params.skip, params.limit)

    logger.info(
        section=LogSection.ADMIN,
        subsection=LogSubsection.ADMIN.LIST_ACCESS,
        message=f"Администратор запросил список пользователей (страница {params.page})",
        user_id=admin["id"]
    )
    return success(
        data=[serialize_user(u) for u in docs],
        pagination=make_pagination(params.page, params.limit, total)
    )


@router.get("/users/inactive")
async def list_inactive_users(
    days: int = Query(settings.INACTIVITY_DAYS, ge=1, le=3650),
    admin: dict = Depends(require_admin),
    users=Depends(get_user_repository)
):
    docs = await users.find_inactive(datetime.utcnow() - timedelta(days=days))

    logger.info(
        section=LogSection.ADMIN,
        subsection=LogSubsection.ADMIN.USER_MANAGEMENT,
        message=f"Найдено {len(docs)} пользователей без активности более {days} дн.",
        user_id=admin["id"]
    )
    return success(data={"days": days, "users": [serialize_user(u) for u in docs]})


@router.post("/notifications/broadcast-inactive")
async def broadcast_inactive(
    admin: dict = Depends(require_admin),
    users=Depends(get_user_repository),
    notifications=Depends(get_notification_repository)
):
    created = await broadcast_inactive_users(users, notifications, settings.INACTIVITY_DAYS)

    logger.info(
        section=LogSection.ADMIN,
        subsection=LogSubsection.ADMIN.BROADCAST,
        message=f"Ручная рассылка неактивным пользователям: создано {created} уведомлений",
        user_id=admin["id"]
    )
    return success(data={"created": created}, message="Уведомления созданы")


@router.put("/users/{user_id}")
async def admin_update_user(
    user_id: str,
    data: AdminUserUpdate,
    admin: dict = Depends(require_admin),
    users=Depends(get_user_repository)
):
    user = await update_user_account(users, admin, user_id, data)
    return success(data=serialize_user(user), message="Пользователь обновлен")


@router.delete("/users/{user_id}")
async def admin_delete_user(
    user_id: str,
    admin: dict = Depends(require_admin),
    users=Depends(get_user_repository)
):
    if str(admin["id"]) == user_id:
        raise Conflict("Администратор не может удалить сам себя через панель администратора")
    await delete_user_account(users, admin, user_id)
    return success(message="Пользователь удален")
