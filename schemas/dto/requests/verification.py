"""
Request DTOs for verification endpoints.

SendVerificationRequest — POST /verification/send
VerifyCodeRequest       — POST /verification/verify
"""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict


class SendVerificationRequest(BaseModel):
    """Request body for POST /verification/send."""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    user_name: Optional[str] = None


class VerifyCodeRequest(BaseModel):
    """Request body for POST /verification/verify.

    ``code`` is the 6-digit OTP sent to the email address.
    """

    model_config = ConfigDict(populate_by_name=True)

    email: str
    code: str
