"""
Task and user-preference records.

Both are owned by the surrounding application and arrive as plain data,
either from the web client (camelCase keys) or from MongoDB (snake_case keys
plus `_id`). Aliases accept both spellings.
"""

from __future__ import annotations

from datetime import date
from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from shared.datetime_utils import parse_calendar_date

TaskType = str  # watering, planting, harvest, fertilizing, pruning, other, ...


def _lift_mongo_id(data: Any) -> Any:
    if isinstance(data, dict) and "_id" in data and "id" not in data:
        data = dict(data)
        data["id"] = str(data.pop("_id"))
    return data


class Task(BaseModel):
    """A garden task as seen by the notification core (read-only)."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str
    title: str
    type: TaskType = "other"
    due_date: date
    enable_notification: bool = False
    notification_timing: int = Field(default=0, ge=0)
    notification_type: Literal["email", "web", "both"] = "both"
    garden_name: Optional[str] = None
    plant_name: Optional[str] = None
    notes: Optional[str] = None
    completed: bool = False
    user_id: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def _from_mongo(cls, data: Any) -> Any:
        return _lift_mongo_id(data)

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _stringify_ids(cls, v: Any) -> Any:
        if v is None:
            return v
        return str(v)

    @field_validator("due_date", mode="before")
    @classmethod
    def _coerce_due_date(cls, v: Any) -> Any:
        return parse_calendar_date(v)

    @field_validator("notification_timing", mode="before")
    @classmethod
    def _coerce_timing(cls, v: Any) -> Any:
        # The web form sends the offset as a string ("3"); blank means same day
        if v is None or (isinstance(v, str) and not v.strip()):
            return 0
        if isinstance(v, str):
            return int(v.strip())
        return v


class UserPreferences(BaseModel):
    """Notification preferences for one user (read-only)."""

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    id: str
    email: Optional[str] = None
    email_notifications: bool = False
    web_push_notifications: bool = False

    @model_validator(mode="before")
    @classmethod
    def _from_mongo(cls, data: Any) -> Any:
        return _lift_mongo_id(data)

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, v: Any) -> Any:
        return str(v) if v is not None else v

    @property
    def any_channel_enabled(self) -> bool:
        return self.email_notifications or self.web_push_notifications
