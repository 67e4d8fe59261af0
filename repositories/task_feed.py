"""
Task feed for the reminder dispatcher.

The dispatcher is the only part of the core that reads tasks itself. It
asks a TaskFeed for ReminderTarget groups: one user with email reminders
switched on, plus that user's open tasks.

MongoTaskFeed reads the `users` and `tasks` collections owned by the
surrounding application.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

import pydantic

from repositories.base import DEFAULT_STORE_TIMEOUT, run_store_op
from schemas.models.task import Task, UserPreferences
from shared.logging import get_logger

log = get_logger(__name__)


@dataclass
class ReminderTarget:
    user: UserPreferences
    tasks: list[Task] = field(default_factory=list)


class TaskFeed(Protocol):
    async def reminder_targets(self) -> list[ReminderTarget]: ...


class MongoTaskFeed:
    def __init__(
        self,
        users: Any,
        tasks: Any,
        *,
        timeout: float = DEFAULT_STORE_TIMEOUT,
        batch_limit: int = 500,
    ) -> None:
        self._users = users
        self._tasks = tasks
        self._timeout = timeout
        self._batch_limit = batch_limit

    async def reminder_targets(self) -> list[ReminderTarget]:
        user_docs = await run_store_op(
            self._users.find(
                {"email_notifications": True, "email": {"$nin": [None, ""]}}
            ).to_list(length=self._batch_limit),
            op="users.find",
            timeout=self._timeout,
        )

        targets: list[ReminderTarget] = []
        for user_doc in user_docs:
            try:
                user = UserPreferences.model_validate(user_doc)
            except pydantic.ValidationError as e:
                log.warning(
                    "task_feed_skipped_malformed_user",
                    user_id=str(user_doc.get("_id")),
                    error_count=e.error_count(),
                )
                continue
            task_docs = await run_store_op(
                self._tasks.find(
                    {"user_id": user.id, "completed": {"$ne": True}}
                ).to_list(length=self._batch_limit),
                op="tasks.find",
                timeout=self._timeout,
            )
            targets.append(ReminderTarget(user=user, tasks=self._parse_tasks(task_docs)))
        return targets

    @staticmethod
    def _parse_tasks(docs: list[dict]) -> list[Task]:
        tasks = []
        for doc in docs:
            try:
                tasks.append(Task.model_validate(doc))
            except pydantic.ValidationError as e:
                log.warning(
                    "task_feed_skipped_malformed_task",
                    task_id=str(doc.get("_id")),
                    error_count=e.error_count(),
                )
        return tasks
