"""
Task → notification scheduling.

TaskNotificationScheduler turns a task plus the owner's preferences into at
most one persisted reminder, and cancels or recreates it as the task
changes. Fire time:

- notification_timing == 0: today at the reminder hour. This anchors to the
  current date, not to due_date, so an overdue task that is re-evaluated
  gets a fresh same-day reminder each time.
- otherwise: (due_date - notification_timing days) at the reminder hour.

A fire time whose calendar day is before today is stale and never stored.

The task_id → notification_id map is derived state used to cancel without
a reverse query; the notification store stays authoritative. Operations on
one task id are serialised with a per-key lock.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone, tzinfo
from typing import Optional

from errors import AppError, NotFoundError
from infrastructure.email.content import task_icon
from repositories.notification_store import NotificationStore
from schemas.models.task import Task, UserPreferences
from shared.datetime_utils import Clock, at_hour, utc_now
from shared.locks import KeyedLock
from shared.logging import get_logger

log = get_logger(__name__)

REMINDER_HOUR = 9
UNKNOWN_GARDEN = "Unknown Garden"

TASK_PRIORITIES = {
    "watering": "high",
    "harvest": "high",
    "planting": "medium",
    "fertilizing": "medium",
    "pruning": "low",
    "other": "low",
}
DEFAULT_PRIORITY = "medium"


def task_priority(task_type: Optional[str]) -> str:
    return TASK_PRIORITIES.get(task_type or "", DEFAULT_PRIORITY)


def build_message(task: Task) -> str:
    base = f'Your task "{task.title}" is due soon'
    garden = task.garden_name or UNKNOWN_GARDEN
    if task.plant_name:
        return f"{base} for {task.plant_name} in {garden}"
    return f"{base} in {garden}"


def compute_scheduled_for(
    task: Task, now: datetime, hour: int = REMINDER_HOUR, tz: tzinfo = timezone.utc
) -> datetime:
    today = now.astimezone(tz).date()
    if task.notification_timing == 0:
        return at_hour(today, hour, tz)
    return at_hour(task.due_date - timedelta(days=task.notification_timing), hour, tz)


class TaskNotificationScheduler:
    def __init__(
        self,
        store: NotificationStore,
        *,
        reminder_hour: int = REMINDER_HOUR,
        tz: tzinfo = timezone.utc,
        now: Clock = utc_now,
    ) -> None:
        self._store = store
        self.reminder_hour = reminder_hour
        self.tz = tz
        self._now = now
        self._pending: dict[str, str] = {}
        self._locks = KeyedLock()

    def pending_notification(self, task_id: str) -> Optional[str]:
        return self._pending.get(str(task_id))

    def scheduled_for(self, task: Task) -> datetime:
        return compute_scheduled_for(task, self._now(), self.reminder_hour, self.tz)

    def build_payload(self, task: Task, scheduled_for: datetime) -> dict:
        return {
            "task_id": task.id,
            "type": task.type,
            "title": f"Reminder: {task.title}",
            "message": build_message(task),
            "garden": task.garden_name or UNKNOWN_GARDEN,
            "plant": task.plant_name or None,
            "priority": task_priority(task.type),
            "icon": task_icon(task.type),
            "scheduled_for": scheduled_for,
            "notification_type": task.notification_type,
            "task_title": task.title,
            "task_type": task.type,
            "due_date": task.due_date.isoformat(),
            "notes": task.notes or None,
        }

    async def create_for_task(
        self, task: Task, user: UserPreferences
    ) -> Optional[str]:
        """Create the reminder for *task*, or return None when none is due.

        Raises store errors; use on_task_created() from mutation hooks.
        """
        async with self._locks.hold(task.id):
            return await self._create(task, user)

    async def _create(self, task: Task, user: UserPreferences) -> Optional[str]:
        if not task.enable_notification:
            log.debug("task_notification_skipped", task_id=task.id, reason="disabled")
            return None

        if not user.any_channel_enabled:
            log.debug(
                "task_notification_skipped", task_id=task.id, reason="user_opted_out"
            )
            return None

        scheduled_for = self.scheduled_for(task)
        today = self._now().astimezone(self.tz).date()
        if scheduled_for.date() < today:
            log.info(
                "task_notification_skipped",
                task_id=task.id,
                reason="stale",
                scheduled_for=scheduled_for.isoformat(),
            )
            return None

        await self._cancel(task.id)
        notification_id = await self._store.create(
            user.id, self.build_payload(task, scheduled_for)
        )
        self._pending[task.id] = notification_id
        log.info(
            "task_notification_scheduled",
            task_id=task.id,
            notification_id=notification_id,
            scheduled_for=scheduled_for.isoformat(),
        )
        return notification_id

    async def cancel_for_task(self, task_id: str) -> None:
        """Delete the reminder recorded for *task_id*; a no-op when none is."""
        key = str(task_id)
        async with self._locks.hold(key):
            await self._cancel(key)

    async def _cancel(self, task_id: str) -> None:
        notification_id = self._pending.get(task_id)
        if notification_id is None:
            return
        try:
            await self._store.delete(notification_id)
        except NotFoundError:
            log.info(
                "task_notification_already_gone",
                task_id=task_id,
                notification_id=notification_id,
            )
        self._pending.pop(task_id, None)
        log.info(
            "task_notification_cancelled",
            task_id=task_id,
            notification_id=notification_id,
        )

    async def update_for_task(
        self, task: Task, user: UserPreferences
    ) -> Optional[str]:
        async with self._locks.hold(task.id):
            await self._cancel(task.id)
            if not task.enable_notification:
                return None
            return await self._create(task, user)

    # Task mutation hooks. The task write has already committed when these
    # run, so a failure here is logged as a secondary error and swallowed.

    async def on_task_created(
        self, task: Task, user: UserPreferences
    ) -> Optional[str]:
        return await self._best_effort(
            "create", task.id, self.create_for_task(task, user)
        )

    async def on_task_updated(
        self, task: Task, user: UserPreferences
    ) -> Optional[str]:
        return await self._best_effort(
            "update", task.id, self.update_for_task(task, user)
        )

    async def on_task_deleted(self, task_id: str) -> None:
        await self._best_effort("cancel", str(task_id), self.cancel_for_task(task_id))

    async def _best_effort(self, action: str, task_id: str, coro) -> Optional[str]:
        try:
            return await coro
        except AppError as e:
            log.error(
                "task_notification_failed",
                action=action,
                task_id=task_id,
                error=e.message,
                error_code=e.error_code,
            )
            return None
