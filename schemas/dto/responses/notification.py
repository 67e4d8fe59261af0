"""
Response DTOs for notification endpoints.

NotificationResponse      — one entry of GET /notifications
NotificationListResponse  — GET /notifications
UnreadCountResponse       — GET /notifications/unread-count
MarkAllReadResponse       — POST /notifications/read-all
TaskNotificationResponse  — task-mutation hooks under /tasks
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict

from schemas.models.notification import NotificationDoc


class NotificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str
    task_id: Optional[str] = None
    type: str
    title: str
    message: str
    garden: Optional[str] = None
    plant: Optional[str] = None
    priority: str
    icon: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None
    read: bool
    read_at: Optional[datetime] = None
    notification_type: str
    due_date: Optional[str] = None

    @classmethod
    def from_doc(cls, doc: NotificationDoc) -> "NotificationResponse":
        data = doc.model_dump(exclude={"id"})
        return cls(id=str(doc.id), **data)


class NotificationListResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    notifications: list[NotificationResponse]
    count: int


class UnreadCountResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    unread: int


class MarkAllReadResponse(BaseModel):
    """Partial success is possible: updated may be lower than requested."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    requested: int
    updated: int
    failed_ids: list[str] = []


class TaskNotificationResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    task_id: str
    scheduled: bool
    notification_id: Optional[str] = None
