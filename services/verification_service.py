"""
One-time-code email verification.

VerificationCodeManager issues a 6-digit code per email address and checks
submissions against it. State per email:

    (no record) --issue--> Pending(attempts=0)
    Pending --wrong code--> Pending(attempts+1)
    Pending --right code--> (no record), success
    Pending --older than ttl--> (no record), Expired
    Pending --attempts >= max--> (no record), Locked

Every check runs in that order: expiry, then lockout, then comparison.
Expiry is evaluated lazily on verify(); there is no background sweep.

verify() never raises: every outcome comes back as a VerificationResult so
routes can render remaining attempts. Not-found and locked outcomes share
one generic message, so a caller cannot tell whether an address ever
requested a code.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from errors import (
    AppError,
    ExpiredError,
    InvalidCodeError,
    LockedError,
    NotFoundError,
    ValidationError,
)
from infrastructure.email.protocol import EmailProvider
from infrastructure.verification.protocol import VerificationRecordStore
from schemas.models.verification import VerificationRecord
from shared.datetime_utils import Clock, ensure_aware, utc_now
from shared.generators import generate_otp_code
from shared.locks import KeyedLock
from shared.logging import get_logger
from shared.validators import normalize_email, validate_email, validate_otp_code

log = get_logger(__name__)

CODE_TTL_SECONDS = 600  # 10 minutes
MAX_ATTEMPTS = 3

GENERIC_FAILURE_MESSAGE = (
    "No active verification code. Please request a new one."
)
EXPIRED_MESSAGE = "Verification code has expired. Please request a new one."
SUCCESS_MESSAGE = "Email verified successfully!"
UNAVAILABLE_MESSAGE = "Verification is temporarily unavailable. Please try again."


@dataclass
class IssueResult:
    email: str
    delivered: bool
    expires_in: int
    code: Optional[str] = None  # only populated when codes are exposed


@dataclass
class VerificationResult:
    success: bool
    message: str
    error: Optional[AppError] = None
    remaining_attempts: Optional[int] = None

    @property
    def error_code(self) -> Optional[str]:
        return self.error.error_code if self.error is not None else None

    @classmethod
    def ok(cls) -> "VerificationResult":
        return cls(success=True, message=SUCCESS_MESSAGE)

    @classmethod
    def fail(
        cls, error: AppError, remaining_attempts: Optional[int] = None
    ) -> "VerificationResult":
        return cls(
            success=False,
            message=error.message,
            error=error,
            remaining_attempts=remaining_attempts,
        )


class VerificationCodeManager:
    def __init__(
        self,
        store: VerificationRecordStore,
        email_provider: EmailProvider,
        *,
        ttl_seconds: int = CODE_TTL_SECONDS,
        max_attempts: int = MAX_ATTEMPTS,
        expose_codes: bool = False,
        now: Clock = utc_now,
    ) -> None:
        self._store = store
        self._email = email_provider
        self.ttl = timedelta(seconds=ttl_seconds)
        self.max_attempts = max_attempts
        self.expose_codes = expose_codes
        self._now = now
        self._locks = KeyedLock()

    async def issue(self, email: str, user_name: Optional[str] = None) -> IssueResult:
        """Issue a fresh code for *email*, replacing any pending one.

        The record is stored before delivery is attempted, so the code stays
        verifiable even when the transport fails.

        Raises:
            ValidationError: *email* is malformed.
            TransientStoreError: the record store is unreachable.
        """
        key = self._normalize(email)
        if key is None:
            raise ValidationError("Invalid email address", field="email")

        code = generate_otp_code()
        record = VerificationRecord(code=code, issued_at=self._now(), attempts=0)
        async with self._locks.hold(key):
            await self._store.put(key, record)

        log.info("verification_code_issued", email=key)

        try:
            delivered = await self._email.send_verification_email(key, user_name, code)
        except Exception as e:
            log.error(
                "verification_email_failed",
                email=key,
                error=str(e),
                error_type=type(e).__name__,
            )
            delivered = False

        if not delivered:
            log.warning("verification_email_not_delivered", email=key)

        return IssueResult(
            email=key,
            delivered=delivered,
            expires_in=int(self.ttl.total_seconds()),
            code=code if self.expose_codes else None,
        )

    async def verify(self, email: str, submitted_code: str) -> VerificationResult:
        key = self._normalize(email)
        if key is None:
            return VerificationResult.fail(
                ValidationError("Invalid email address", field="email")
            )
        code = (submitted_code or "").strip()
        if not validate_otp_code(code):
            return VerificationResult.fail(
                ValidationError("Verification code must be 6 digits", field="code")
            )

        try:
            async with self._locks.hold(key):
                return await self._check(key, code)
        except AppError as e:
            log.error("verification_check_failed", email=key, error_code=e.error_code)
            return VerificationResult.fail(type(e)(UNAVAILABLE_MESSAGE))

    async def _check(self, key: str, code: str) -> VerificationResult:
        record = await self._store.get(key)
        if record is None:
            log.warning("verification_failed", email=key, reason="not_found")
            return VerificationResult.fail(NotFoundError(GENERIC_FAILURE_MESSAGE))

        if self._now() - ensure_aware(record.issued_at) > self.ttl:
            await self._store.delete(key)
            log.warning("verification_failed", email=key, reason="expired")
            return VerificationResult.fail(ExpiredError(EXPIRED_MESSAGE))

        if record.attempts >= self.max_attempts:
            await self._store.delete(key)
            log.warning(
                "verification_failed",
                email=key,
                reason="locked",
                attempts=record.attempts,
            )
            return VerificationResult.fail(LockedError(GENERIC_FAILURE_MESSAGE))

        if hmac.compare_digest(record.code, code):
            await self._store.delete(key)
            log.info("verification_succeeded", email=key)
            return VerificationResult.ok()

        attempts = await self._store.increment_attempts(key)
        remaining = max(0, self.max_attempts - attempts)
        log.warning(
            "verification_failed",
            email=key,
            reason="invalid_code",
            attempts=attempts,
            remaining_attempts=remaining,
        )
        return VerificationResult.fail(
            InvalidCodeError(
                f"Invalid verification code. {remaining} attempts remaining.",
                details={"remaining_attempts": remaining},
            ),
            remaining_attempts=remaining,
        )

    async def pending(self, email: str) -> Optional[VerificationRecord]:
        """Peek at the live record; diagnostics only, None when codes are hidden."""
        if not self.expose_codes:
            return None
        key = self._normalize(email)
        if key is None:
            return None
        return await self._store.get(key)

    @staticmethod
    def _normalize(email: str) -> Optional[str]:
        if not isinstance(email, str):
            return None
        key = normalize_email(email)
        return key if validate_email(key) else None
