"""
NotificationStore: CRUD façade over the `notifications` collection.

Owns no business logic beyond mapping between NotificationDoc and raw
documents. There is no local cache: store failures are raised to the caller.

mark_all_read() is a sequence of independent updates. If one update fails
the rest are still attempted and the result reports how many went through;
the user can be left with a mix of read and unread notifications.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from pymongo import DESCENDING

from errors import AppError, NotFoundError
from repositories.base import DEFAULT_STORE_TIMEOUT, parse_object_id, run_store_op
from schemas.models.notification import NotificationDoc
from shared.datetime_utils import Clock, utc_now
from shared.logging import get_logger

log = get_logger(__name__)

DEFAULT_LIST_LIMIT = 50


@dataclass
class MarkAllReadResult:
    requested: int
    updated: int
    failed_ids: list[str] = field(default_factory=list)

    @property
    def complete(self) -> bool:
        return self.updated == self.requested


class NotificationStore:
    def __init__(
        self,
        collection: Any,
        *,
        timeout: float = DEFAULT_STORE_TIMEOUT,
        now: Clock = utc_now,
    ) -> None:
        self._col = collection
        self._timeout = timeout
        self._now = now

    async def ensure_indexes(self) -> None:
        await run_store_op(
            self._col.create_index([("user_id", 1), ("timestamp", DESCENDING)]),
            op="notifications.create_index",
            timeout=self._timeout,
        )

    async def create(self, user_id: str, data: dict) -> str:
        """Insert a notification for *user_id* and return its id.

        timestamp/created_at are stamped here and read is forced to False,
        whatever *data* carries.
        """
        now = self._now()
        fields = {
            k: v
            for k, v in data.items()
            if k not in ("id", "_id", "user_id", "read", "read_at")
        }
        fields.update(timestamp=now, created_at=now)
        doc = NotificationDoc(user_id=user_id, read=False, read_at=None, **fields)

        result = await run_store_op(
            self._col.insert_one(doc.to_mongo()),
            op="notifications.insert_one",
            timeout=self._timeout,
        )
        notification_id = str(result.inserted_id)
        log.info(
            "notification_created",
            notification_id=notification_id,
            user_id=user_id,
            task_id=doc.task_id,
        )
        return notification_id

    async def list(
        self, user_id: str, limit: int = DEFAULT_LIST_LIMIT
    ) -> list[NotificationDoc]:
        """Newest-first notifications for *user_id*, at most *limit*."""
        cursor = (
            self._col.find({"user_id": user_id})
            .sort("timestamp", DESCENDING)
            .limit(limit)
        )
        raw = await run_store_op(
            cursor.to_list(length=limit),
            op="notifications.find",
            timeout=self._timeout,
        )
        log.debug("notifications_listed", user_id=user_id, count=len(raw))
        return [NotificationDoc.from_mongo(d) for d in raw]

    async def get(self, notification_id: str) -> Optional[NotificationDoc]:
        oid = parse_object_id(notification_id)
        raw = await run_store_op(
            self._col.find_one({"_id": oid}),
            op="notifications.find_one",
            timeout=self._timeout,
        )
        return NotificationDoc.from_mongo(raw)

    async def mark_read(self, notification_id: str) -> None:
        oid = parse_object_id(notification_id)
        result = await run_store_op(
            self._col.update_one(
                {"_id": oid}, {"$set": {"read": True, "read_at": self._now()}}
            ),
            op="notifications.update_one",
            timeout=self._timeout,
        )
        if result.matched_count == 0:
            raise NotFoundError(
                "Notification not found", details={"id": notification_id}
            )
        log.info("notification_marked_read", notification_id=notification_id)

    async def mark_all_read(self, user_id: str) -> MarkAllReadResult:
        """Mark every unread notification of *user_id* as read, one by one.

        Only the most recent DEFAULT_LIST_LIMIT notifications are considered,
        matching what list() shows the user.
        """
        notifications = await self.list(user_id)
        unread = [str(n.id) for n in notifications if not n.read]
        result = MarkAllReadResult(requested=len(unread), updated=0)

        for notification_id in unread:
            try:
                await self.mark_read(notification_id)
                result.updated += 1
            except AppError as e:
                result.failed_ids.append(notification_id)
                log.warning(
                    "notification_mark_read_skipped",
                    notification_id=notification_id,
                    user_id=user_id,
                    error_code=e.error_code,
                )

        log.info(
            "notifications_marked_all_read",
            user_id=user_id,
            requested=result.requested,
            updated=result.updated,
        )
        return result

    async def delete(self, notification_id: str) -> None:
        oid = parse_object_id(notification_id)
        result = await run_store_op(
            self._col.delete_one({"_id": oid}),
            op="notifications.delete_one",
            timeout=self._timeout,
        )
        if result.deleted_count == 0:
            raise NotFoundError(
                "Notification not found", details={"id": notification_id}
            )
        log.info("notification_deleted", notification_id=notification_id)

    async def unread_count(self, user_id: str) -> int:
        return await run_store_op(
            self._col.count_documents({"user_id": user_id, "read": False}),
            op="notifications.count_documents",
            timeout=self._timeout,
        )
