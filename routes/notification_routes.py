"""
Notification endpoints, scoped to the caller's X-User-Id.

GET    /notifications               — newest first, ?limit= (1–200, default 50)
GET    /notifications/unread-count
POST   /notifications/read-all      — partial success reported in counts
POST   /notifications/test-email    — send a test message through the transport
POST   /notifications/{id}/read
DELETE /notifications/{id}
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Response

from dependencies import get_email_provider, get_notification_store, get_user_id
from errors import NotFoundError, ValidationError
from infrastructure.email.protocol import EmailProvider
from repositories.notification_store import DEFAULT_LIST_LIMIT, NotificationStore
from schemas.dto.requests.notification import SendTestEmailRequest
from schemas.dto.responses.common import MessageResponse
from schemas.dto.responses.notification import (
    MarkAllReadResponse,
    NotificationListResponse,
    NotificationResponse,
    UnreadCountResponse,
)
from shared.validators import normalize_email, validate_email

router = APIRouter(prefix="/notifications", tags=["notifications"])


async def _require_owned(store: NotificationStore, notification_id: str, user_id: str) -> None:
    doc = await store.get(notification_id)
    if doc is None or doc.user_id != user_id:
        raise NotFoundError("Notification not found", details={"id": notification_id})


@router.get("")
async def list_notifications(
    limit: int = Query(default=DEFAULT_LIST_LIMIT, ge=1, le=200),
    user_id: str = Depends(get_user_id),
    store: NotificationStore = Depends(get_notification_store),
) -> NotificationListResponse:
    docs = await store.list(user_id, limit=limit)
    items = [NotificationResponse.from_doc(d) for d in docs]
    return NotificationListResponse(notifications=items, count=len(items))


@router.get("/unread-count")
async def unread_count(
    user_id: str = Depends(get_user_id),
    store: NotificationStore = Depends(get_notification_store),
) -> UnreadCountResponse:
    return UnreadCountResponse(unread=await store.unread_count(user_id))


@router.post("/read-all")
async def mark_all_read(
    user_id: str = Depends(get_user_id),
    store: NotificationStore = Depends(get_notification_store),
) -> MarkAllReadResponse:
    result = await store.mark_all_read(user_id)
    return MarkAllReadResponse(
        success=result.complete,
        requested=result.requested,
        updated=result.updated,
        failed_ids=result.failed_ids,
    )


@router.post("/test-email")
async def send_test_email(
    body: SendTestEmailRequest,
    user_id: str = Depends(get_user_id),
    email_provider: EmailProvider = Depends(get_email_provider),
) -> MessageResponse:
    email = normalize_email(body.email)
    if not validate_email(email):
        raise ValidationError("Invalid email address", field="email")
    delivered = await email_provider.send_test_notification(email)
    message = (
        "Test notification sent successfully!"
        if delivered
        else "Failed to send test notification. Please try again."
    )
    return MessageResponse(success=delivered, message=message)


@router.post("/{notification_id}/read")
async def mark_read(
    notification_id: str,
    user_id: str = Depends(get_user_id),
    store: NotificationStore = Depends(get_notification_store),
) -> MessageResponse:
    await _require_owned(store, notification_id, user_id)
    await store.mark_read(notification_id)
    return MessageResponse(success=True)


@router.delete("/{notification_id}", status_code=204)
async def delete_notification(
    notification_id: str,
    user_id: str = Depends(get_user_id),
    store: NotificationStore = Depends(get_notification_store),
) -> Response:
    await _require_owned(store, notification_id, user_id)
    await store.delete(notification_id)
    return Response(status_code=204)
