"""
Random code generators — pure, side-effect-free functions.

Codes are drawn from the ``secrets`` module so they cannot be predicted from
earlier codes.
"""

from __future__ import annotations

import secrets

OTP_MIN = 100000
OTP_MAX = 999999


def generate_otp_code() -> str:
    """Generate a 6-digit numeric OTP, uniform over 100000–999999.

    The range excludes leading zeros, so the string form is always exactly
    six digits.
    """
    return str(OTP_MIN + secrets.randbelow(OTP_MAX - OTP_MIN + 1))
