"""Mock EmailProvider that writes messages to the log instead of sending them.

Used when no ZeptoMail token is configured, so local development still
exercises the full issue/verify and reminder flows.
"""

from typing import Optional

from infrastructure.email import content
from schemas.models.task import Task
from shared.logging import get_logger

log = get_logger(__name__)


class LoggingEmailProvider:
    def __init__(self, log_codes: bool = False) -> None:
        # Codes are only written when the diagnostics switch is on
        self._log_codes = log_codes

    async def send_verification_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool:
        log.info(
            "mock_verification_email",
            to_email=email,
            demo=otp_code if self._log_codes else "hidden",
        )
        return True

    async def send_task_reminder(self, email: str, task: Task) -> bool:
        log.info(
            "mock_task_reminder",
            to_email=email,
            subject=content.reminder_subject(task),
            task_id=task.id,
            task_type=task.type,
            due_date=task.due_date.isoformat(),
            garden=task.garden_name or "Unknown",
        )
        return True

    async def send_garden_summary(
        self, email: str, summary: content.GardenSummary
    ) -> bool:
        log.info(
            "mock_garden_summary",
            to_email=email,
            subject=content.summary_subject(summary),
            upcoming_tasks=len(summary.upcoming_tasks),
            gardens=len(summary.gardens),
        )
        return True

    async def send_test_notification(self, email: str) -> bool:
        log.info("mock_test_notification", to_email=email, subject=content.TEST_SUBJECT)
        return True
