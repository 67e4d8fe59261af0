"""EmailProvider protocol: the message transport the core depends on.

Every method returns True on accepted delivery and False otherwise. Callers
treat delivery as fire-and-forget: no state transition depends on the result.
"""

from typing import Optional, Protocol

from infrastructure.email.content import GardenSummary
from schemas.models.task import Task


class EmailProvider(Protocol):
    async def send_verification_email(
        self, email: str, user_name: Optional[str], otp_code: str
    ) -> bool: ...

    async def send_task_reminder(self, email: str, task: Task) -> bool: ...

    async def send_garden_summary(self, email: str, summary: GardenSummary) -> bool: ...

    async def send_test_notification(self, email: str) -> bool: ...
