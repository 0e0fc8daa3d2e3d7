# flashquiz/notifications/inactivity.py
"""
Уведомления неактивным пользователям.

Фоновая задача периодически находит пользователей без активности дольше
INACTIVITY_DAYS и создает им уведомление. Пока прошлое уведомление не
прочитано, новое не создается. С проверкой ответов задача общего
состояния не имеет: работает только с users и notifications.
"""

import asyncio
from datetime import datetime, timedelta
from typing import Optional

from flashquiz.db.repositories import NotificationRepository, UserRepository
from flashquiz.logging import get_logger, LogSection, LogSubsection

logger = get_logger(__name__)

INACTIVITY_KIND = "inactivity"


def inactivity_message(days: int) -> str:
    return f"Вы не заходили больше {days} дн. Вернитесь и продолжите викторину!"


async def broadcast_inactive_users(users: UserRepository, notifications: NotificationRepository, days: int) -> int:
    """
    Создает уведомления всем неактивным пользователям.

    Returns:
        число созданных уведомлений
    """
    threshold = datetime.utcnow() - timedelta(days=days)
    inactive = await users.find_inactive(threshold)

    created = 0
    for user in inactive:
        if await notifications.create_if_absent(user["_id"], INACTIVITY_KIND, inactivity_message(days)):
            created += 1

    logger.info(
        section=LogSection.NOTIFICATION,
        subsection=LogSubsection.NOTIFICATION.SWEEP,
        message=(
            f"Проверка неактивных пользователей: найдено {len(inactive)}, "
            f"создано уведомлений {created}"
        ),
        extra_data={"days": days, "inactive": len(inactive), "created": created}
    )
    return created


async def inactivity_sweep_loop(db, interval_seconds: int, days: int):
    """Периодическая рассылка (раньше cron раз в 30 минут)"""
    logger.info(
        section=LogSection.SYSTEM,
        subsection=LogSubsection.SYSTEM.MAINTENANCE,
        message=f"Запуск задачи уведомления неактивных пользователей (каждые {interval_seconds} с)"
    )
    users = UserRepository(db)
    notifications = NotificationRepository(db)

    while True:
        try:
            await broadcast_inactive_users(users, notifications, days)
        except Exception as e:
            # Сбой одного прохода не должен останавливать задачу
            logger.error(
                section=LogSection.NOTIFICATION,
                subsection=LogSubsection.NOTIFICATION.SWEEP,
                message=f"Ошибка проверки неактивных пользователей: {str(e)}",
                extra_data={"error_type": type(e).__name__}
            )

        await asyncio.sleep(interval_seconds)


class InactivitySweepTask:
    """Фоновая задача рассылки: запускается на старте приложения, останавливается при завершении"""

    def __init__(self):
        self.task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self.task is not None and not self.task.done()

    def start(self, db, interval_seconds: int, days: int):
        if self.running:
            return
        self.task = asyncio.create_task(inactivity_sweep_loop(db, interval_seconds, days))

    async def stop(self):
        if self.task is None:
            return
        self.task.cancel()
        try:
            await self.task
        except asyncio.CancelledError:
            pass
        finally:
            self.task = None
        logger.info(
            section=LogSection.SYSTEM,
            subsection=LogSubsection.SYSTEM.SHUTDOWN,
            message="Задача уведомления неактивных пользователей остановлена"
        )


# Глобальный экземпляр фоновой задачи
inactivity_sweep = InactivitySweepTask()
