"""
Request DTOs for task-mutation hooks and notification endpoints.

The task hooks are called by the owning application after a task write has committed.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

from schemas.models.task import Task, UserPreferences


class TaskNotificationRequest(BaseModel):
    """Body for POST /tasks/notifications and PUT /tasks/{task_id}/notifications."""

    model_config = ConfigDict(populate_by_name=True)

    task: Task
    user: UserPreferences


class SendTestEmailRequest(BaseModel):
    """Body for POST /notifications/test-email."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
