"""
Task-mutation hooks.

The owning application calls these after it has committed a task write:

POST   /tasks/notifications              — task created
PUT    /tasks/{task_id}/notifications    — task updated
DELETE /tasks/{task_id}/notifications    — task deleted

Notification work is best-effort here: a store failure is logged and the
hook answers 200 with scheduled=false.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_task_scheduler
from errors import ValidationError
from schemas.dto.requests.notification import TaskNotificationRequest
from schemas.dto.responses.notification import TaskNotificationResponse
from services.task_notification_scheduler import TaskNotificationScheduler

router = APIRouter(prefix="/tasks", tags=["tasks"])


@router.post("/notifications")
async def task_created(
    body: TaskNotificationRequest,
    scheduler: TaskNotificationScheduler = Depends(get_task_scheduler),
) -> TaskNotificationResponse:
    notification_id = await scheduler.on_task_created(body.task, body.user)
    return TaskNotificationResponse(
        task_id=body.task.id,
        scheduled=notification_id is not None,
        notification_id=notification_id,
    )


@router.put("/{task_id}/notifications")
async def task_updated(
    task_id: str,
    body: TaskNotificationRequest,
    scheduler: TaskNotificationScheduler = Depends(get_task_scheduler),
) -> TaskNotificationResponse:
    if body.task.id != task_id:
        raise ValidationError("Task id does not match the URL", field="task.id")
    notification_id = await scheduler.on_task_updated(body.task, body.user)
    return TaskNotificationResponse(
        task_id=task_id,
        scheduled=notification_id is not None,
        notification_id=notification_id,
    )


@router.delete("/{task_id}/notifications")
async def task_deleted(
    task_id: str,
    scheduler: TaskNotificationScheduler = Depends(get_task_scheduler),
) -> TaskNotificationResponse:
    await scheduler.on_task_deleted(task_id)
    return TaskNotificationResponse(task_id=task_id, scheduled=False)
