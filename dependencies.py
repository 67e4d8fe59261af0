"""
FastAPI dependency providers.

All injectable dependencies are plain functions used with FastAPI's
Depends() system. Services are built once in the app lifespan and stored
on app.state.
"""

from __future__ import annotations

from fastapi import Header, Request

from config import AppSettings
from errors import ValidationError
from infrastructure.email.protocol import EmailProvider
from repositories.notification_store import NotificationStore
from services.task_notification_scheduler import TaskNotificationScheduler
from services.verification_service import VerificationCodeManager


def get_settings(request: Request) -> AppSettings:
    """Return the AppSettings instance stored on app.state."""
    return request.app.state.settings


def get_verification_manager(request: Request) -> VerificationCodeManager:
    return request.app.state.verification_manager


def get_notification_store(request: Request) -> NotificationStore:
    return request.app.state.notification_store


def get_task_scheduler(request: Request) -> TaskNotificationScheduler:
    return request.app.state.task_scheduler


def get_email_provider(request: Request) -> EmailProvider:
    return request.app.state.email_provider


def get_user_id(x_user_id: str = Header(default="")) -> str:
    """Identity of the caller, asserted by the fronting application."""
    user_id = x_user_id.strip()
    if not user_id:
        raise ValidationError("X-User-Id header is required", field="X-User-Id")
    return user_id
