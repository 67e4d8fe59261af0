"""
Email verification endpoints.

POST /verification/send   — issue a code and deliver it by email
POST /verification/verify — check a submitted code

Failed checks are rendered through the AppError handler. A locked record is
answered exactly like a missing one, so the response never reveals whether
an address has requested a code.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends

from dependencies import get_verification_manager
from errors import LockedError, NotFoundError
from schemas.dto.requests.verification import SendVerificationRequest, VerifyCodeRequest
from schemas.dto.responses.common import ErrorResponse
from schemas.dto.responses.verification import (
    SendVerificationResponse,
    VerifyCodeResponse,
)
from services.verification_service import VerificationCodeManager

router = APIRouter(prefix="/verification", tags=["verification"])


@router.post("/send", response_model_exclude_none=True)
async def send_verification(
    body: SendVerificationRequest,
    manager: VerificationCodeManager = Depends(get_verification_manager),
) -> SendVerificationResponse:
    result = await manager.issue(body.email, body.user_name)
    message = (
        "Verification email sent successfully"
        if result.delivered
        else "Verification code generated; email delivery failed"
    )
    return SendVerificationResponse(
        success=True,
        message=message,
        delivered=result.delivered,
        expires_in=result.expires_in,
        demo_code=result.code,
    )


@router.post(
    "/verify",
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        410: {"model": ErrorResponse},
        503: {"model": ErrorResponse},
    },
)
async def verify_code(
    body: VerifyCodeRequest,
    manager: VerificationCodeManager = Depends(get_verification_manager),
) -> VerifyCodeResponse:
    result = await manager.verify(body.email, body.code)
    if not result.success:
        if isinstance(result.error, LockedError):
            raise NotFoundError(result.error.message)
        raise result.error
    return VerifyCodeResponse(success=True, message=result.message, email_verified=True)
