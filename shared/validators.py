"""
Input validators — framework-agnostic, pure functions.
"""

from __future__ import annotations

import re

import validators as _validators

_OTP_PATTERN = re.compile(r"[0-9]{6}")


def normalize_email(email: str) -> str:
    """Trim and lowercase an email address so one mailbox maps to one key."""
    return email.strip().lower()


def validate_email(email: str) -> bool:
    """Return True if *email* is a syntactically valid address."""
    if not email:
        return False
    return bool(_validators.email(email))


def validate_otp_code(code: str) -> bool:
    """Return True if *code* is exactly six decimal digits."""
    return bool(code) and bool(_OTP_PATTERN.fullmatch(code))
