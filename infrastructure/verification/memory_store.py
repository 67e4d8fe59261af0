"""In-process verification record store, used when Redis is not configured.

Records do not survive a restart and are not shared between workers.
Expiry is left to the caller's lazy check; records are removed by the
verification manager on success, expiry or lockout.
"""

from typing import Optional

from schemas.models.verification import VerificationRecord


class InMemoryVerificationStore:
    def __init__(self) -> None:
        self._records: dict[str, VerificationRecord] = {}

    async def get(self, email: str) -> Optional[VerificationRecord]:
        record = self._records.get(email)
        return record.model_copy() if record is not None else None

    async def put(self, email: str, record: VerificationRecord) -> None:
        self._records[email] = record.model_copy()

    async def increment_attempts(self, email: str) -> int:
        record = self._records[email]
        record.attempts += 1
        return record.attempts

    async def delete(self, email: str) -> None:
        self._records.pop(email, None)

    def __len__(self) -> int:
        return len(self._records)
