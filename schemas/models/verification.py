"""
Verification record model.

One live record per (normalised) email address. The record is the whole
state of a pending verification: there is no stored "verified" flag, a
successful check simply destroys the record.

Serialised to a flat string mapping for storage in a Redis hash.
"""

from __future__ import annotations

from datetime import datetime
from typing import Mapping

from pydantic import BaseModel, Field

from shared.datetime_utils import ensure_aware


class VerificationRecord(BaseModel):
    code: str = Field(pattern=r"^\d{6}$")
    issued_at: datetime
    attempts: int = Field(default=0, ge=0)

    def to_redis(self) -> dict[str, str]:
        return {
            "code": self.code,
            "issued_at": ensure_aware(self.issued_at).isoformat(),
            "attempts": str(self.attempts),
        }

    @classmethod
    def from_redis(cls, data: Mapping[str, str]) -> "VerificationRecord":
        return cls(
            code=data["code"],
            issued_at=ensure_aware(datetime.fromisoformat(data["issued_at"])),
            attempts=int(data.get("attempts", 0)),
        )
