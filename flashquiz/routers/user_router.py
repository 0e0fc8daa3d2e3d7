from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException, Query

from flashquiz.core.dependencies import get_notification_repository, get_user_repository
from flashquiz.core.errors import InvalidInput, UserNotFound
from flashquiz.core.response import success
from flashquiz.core.security import ensure_self_or_admin, get_current_actor, hash_password
from flashquiz.logging import get_logger, LogSection, LogSubsection
from flashquiz.schemas.user_schemas import UserUpdate, serialize_notification, serialize_user

logger = get_logger(__name__)
router = APIRouter()


def build_user_update(data: UserUpdate) -> Dict[str, Any]:
    """Поля для $set; пароль сохраняется только в виде хэша"""
    fields = data.model_dump(exclude_none=True)
    if not fields:
        raise InvalidInput("Нет полей для обновления")
    if "password" in fields:
        fields["hashed_password"] = hash_password(fields.pop("password"))
    return fields


async def update_user_account(users, actor: dict, user_id: str, data: UserUpdate) -> dict:
    user = await users.update(user_id, build_user_update(data))
    if not user:
        raise UserNotFound(details={"userId": user_id})

    logger.info(
        section=LogSection.USER,
        subsection=LogSubsection.USER.UPDATE,
        message=f"Профиль пользователя {user_id} обновлен (поля: {', '.join(sorted(data.model_fields_set))})",
        user_id=actor["id"]
    )
    return user


async def delete_user_account(users, actor: dict, user_id: str):
    if not await users.delete(user_id):
        raise UserNotFound(details={"userId": user_id})

    logger.warning(
        section=LogSection.USER,
        subsection=LogSubsection.USER.DELETE,
        message=f"Пользователь {user_id} удален вместе с попытками и уведомлениями",
        user_id=actor["id"]
    )


@router.get("/me/notifications")
async def list_my_notifications(
    unread_only: bool = Query(False),
    actor: dict = Depends(get_current_actor),
    notifications=Depends(get_notification_repository)
):
    docs = await notifications.list_for_user(actor["id"], unread_only=unread_only)
    return success(data=[serialize_notification(n) for n in docs])


@router.put("/me/notifications/{notification_id}/read")
async def mark_notification_read(
    notification_id: str,
    actor: dict = Depends(get_current_actor),
    notifications=Depends(get_notification_repository)
):
    notification = await notifications.mark_read(actor["id"], notification_id)
    if not notification:
        raise HTTPException(status_code=404, detail={"message": "Уведомление не найдено"})

    logger.info(
        section=LogSection.NOTIFICATION,
        subsection=LogSubsection.NOTIFICATION.READ,
        message=f"Уведомление {notification_id} отмечено прочитанным",
        user_id=actor["id"]
    )
    return success(data=serialize_notification(notification), message="Уведомление прочитано")


@router.put("/{user_id}")
async def update_user(
    user_id: str,
    data: UserUpdate,
    actor: dict = Depends(get_current_actor),
    users=Depends(get_user_repository)
):
    ensure_self_or_admin(actor, user_id)
    user = await update_user_account(users, actor, user_id, data)
    return success(data=serialize_user(user), message="Профиль обновлен")


@router.delete("/{user_id}")
async def delete_user(
    user_id: str,
    actor: dict = Depends(get_current_actor),
    users=Depends(get_user_repository)
):
    ensure_self_or_admin(actor, user_id)
    await delete_user_account(users, actor, user_id)
    return success(message="Пользователь удален")
