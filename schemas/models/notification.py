"""
Notification document model.

Maps to the `notifications` MongoDB collection.

user_id and task_id are external identifiers (strings), not ObjectIds:
users and tasks are owned by the surrounding application.
read is always False on insert; read_at is only set when read flips to True.
due_date is stored as an ISO date string because BSON has no date-only type.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal, Optional

from schemas.models.base import MongoBaseModel

Priority = Literal["high", "medium", "low"]
DeliveryChannel = Literal["email", "web", "both"]


class NotificationDoc(MongoBaseModel):
    """Document model for the `notifications` collection."""

    user_id: str
    task_id: Optional[str] = None
    type: str
    title: str
    message: str
    garden: Optional[str] = None
    plant: Optional[str] = None
    priority: Priority = "medium"
    icon: Optional[str] = None
    scheduled_for: Optional[datetime] = None
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None
    read: bool = False
    read_at: Optional[datetime] = None

    # Task context copied at creation so the notification renders on its own
    notification_type: DeliveryChannel = "both"
    task_title: Optional[str] = None
    task_type: Optional[str] = None
    due_date: Optional[str] = None
    notes: Optional[str] = None
