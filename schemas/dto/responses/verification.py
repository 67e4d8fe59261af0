"""
Response DTOs for verification endpoints.

SendVerificationResponse — POST /verification/send  (200)
VerifyCodeResponse       — POST /verification/verify  (200)
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class SendVerificationResponse(BaseModel):
    """Response body for POST /verification/send.

    demo_code is only present when the diagnostics switch is on; route
    handlers serialise with exclude_none=True so it is absent otherwise.
    """

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    delivered: bool
    expires_in: int
    demo_code: Optional[str] = None


class VerifyCodeResponse(BaseModel):
    """Response body for POST /verification/verify (200)."""

    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: str
    email_verified: bool
