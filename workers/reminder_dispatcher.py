"""
Periodic reminder dispatcher.

Every interval the dispatcher asks its TaskFeed for users with email
reminders enabled, picks the tasks due exactly one day from today that are
not completed, and sends one reminder per task through the EmailProvider.

Ticks run as background tasks so a slow store never delays the cadence, and
they never overlap: if the previous tick is still running when the next one
is due, the new tick is skipped rather than queued.

On the configured weekday, from the reminder hour onward, each user also
gets one weekly summary of the open tasks due in the next seven days.

Each (task id, due date) pair and each weekly summary gets one delivery
attempt per day. Attempts are remembered in memory and the set is cleared
when the local date changes; it is per process, so a restart or a second
replica can repeat a send.
"""

from __future__ import annotations

import asyncio
from datetime import date, timedelta, timezone, tzinfo
from typing import Iterable, Optional

from errors import AppError
from infrastructure.email.content import build_garden_summary
from infrastructure.email.protocol import EmailProvider
from repositories.task_feed import TaskFeed
from schemas.models.task import Task
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_INTERVAL_SECONDS = 60.0
DEFAULT_SUMMARY_WEEKDAY = 6  # Sunday
DEFAULT_SUMMARY_HOUR = 9


def select_due_tasks(tasks: Iterable[Task], today: date) -> list[Task]:
    """Tasks due exactly one day after *today* and not completed."""
    tomorrow = today + timedelta(days=1)
    return [t for t in tasks if t.due_date == tomorrow and not t.completed]


class ReminderDispatcher:
    def __init__(
        self,
        feed: TaskFeed,
        email_provider: EmailProvider,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        tz: tzinfo = timezone.utc,
        summary_weekday: Optional[int] = DEFAULT_SUMMARY_WEEKDAY,
        summary_hour: int = DEFAULT_SUMMARY_HOUR,
        now: Clock = utc_now,
    ) -> None:
        self._feed = feed
        self._email = email_provider
        self.interval_seconds = max(0.01, float(interval_seconds))
        self.tz = tz
        self.summary_weekday = summary_weekday
        self.summary_hour = summary_hour
        self._now = now
        self._runner: Optional[asyncio.Task] = None
        self._current_tick: Optional[asyncio.Task] = None
        self._stopping = asyncio.Event()
        self.ticks_skipped = 0
        self._attempted: set[tuple[str, date]] = set()
        self._attempted_day: Optional[date] = None

    @property
    def running(self) -> bool:
        return self._runner is not None and not self._runner.done()

    async def tick(self) -> int:
        """Run one scan and return the number of reminders delivered."""
        local_now = self._now().astimezone(self.tz)
        today = local_now.date()
        summary_due = (
            self.summary_weekday is not None
            and today.weekday() == self.summary_weekday
            and local_now.hour >= self.summary_hour
        )
        if today != self._attempted_day:
            self._attempted.clear()
            self._attempted_day = today
        targets = await self._feed.reminder_targets()

        sent = 0
        for target in targets:
            user = target.user
            if not user.email_notifications or not user.email:
                continue
            due = [
                t
                for t in select_due_tasks(target.tasks, today)
                if (t.id, t.due_date) not in self._attempted
            ]
            if due:
                log.info("reminders_due", user_id=user.id, count=len(due))
            for task in due:
                self._attempted.add((task.id, task.due_date))
                if await self._send(user.email, task):
                    sent += 1
            if summary_due:
                await self._maybe_send_summary(user.id, user.email, target.tasks, today)
        return sent

    async def _maybe_send_summary(
        self, user_id: str, email: str, tasks: list[Task], today: date
    ) -> None:
        key = (f"summary:{user_id}", today)
        if key in self._attempted:
            return
        self._attempted.add(key)
        summary = build_garden_summary(tasks, today)
        try:
            delivered = await self._email.send_garden_summary(email, summary)
        except Exception as e:
            log.error(
                "garden_summary_send_error",
                user_id=user_id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return
        if delivered:
            log.info(
                "garden_summary_sent",
                user_id=user_id,
                upcoming_tasks=len(summary.upcoming_tasks),
            )
        else:
            log.error("garden_summary_not_delivered", user_id=user_id)

    async def _send(self, email: str, task: Task) -> bool:
        try:
            delivered = await self._email.send_task_reminder(email, task)
        except Exception as e:
            log.error(
                "task_reminder_send_error",
                task_id=task.id,
                error=str(e),
                error_type=type(e).__name__,
            )
            return False
        if delivered:
            log.info("task_reminder_sent", task_id=task.id, title=task.title)
        else:
            log.error("task_reminder_not_delivered", task_id=task.id, title=task.title)
        return delivered

    async def _safe_tick(self) -> None:
        try:
            sent = await self.tick()
            log.info("reminder_tick_completed", sent=sent)
        except AppError as e:
            log.error("reminder_tick_failed", error=e.message, error_code=e.error_code)
        except Exception:
            log.exception("reminder_tick_crashed")

    def _launch_tick(self) -> None:
        if self._current_tick is not None and not self._current_tick.done():
            self.ticks_skipped += 1
            log.warning("reminder_tick_skipped", reason="previous_tick_running")
            return
        self._current_tick = asyncio.create_task(self._safe_tick())

    async def _run(self) -> None:
        log.info("reminder_dispatcher_started", interval_seconds=self.interval_seconds)
        while not self._stopping.is_set():
            self._launch_tick()
            try:
                await asyncio.wait_for(
                    self._stopping.wait(), timeout=self.interval_seconds
                )
            except asyncio.TimeoutError:
                pass
        log.info("reminder_dispatcher_stopped")

    def start(self) -> asyncio.Task:
        if self.running:
            return self._runner
        self._stopping = asyncio.Event()
        self._runner = asyncio.create_task(self._run())
        return self._runner

    async def stop(self, grace_seconds: float = 5.0) -> None:
        """Stop the loop and let an in-flight tick finish within *grace_seconds*."""
        self._stopping.set()
        if self._runner is not None:
            await self._runner
            self._runner = None

        tick = self._current_tick
        if tick is not None and not tick.done():
            try:
                await asyncio.wait_for(tick, timeout=grace_seconds)
            except asyncio.TimeoutError:
                log.warning("reminder_tick_cancelled_on_stop")
        self._current_tick = None
