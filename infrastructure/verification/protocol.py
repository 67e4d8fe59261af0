"""VerificationRecordStore protocol: keyed storage for pending codes.

Keys are normalised email addresses. Implementations raise
TransientStoreError when the backing store cannot be reached.
"""

from typing import Optional, Protocol

from schemas.models.verification import VerificationRecord


class VerificationRecordStore(Protocol):
    async def get(self, email: str) -> Optional[VerificationRecord]: ...

    async def put(self, email: str, record: VerificationRecord) -> None:
        """Store *record*, replacing any existing record for *email*."""
        ...

    async def increment_attempts(self, email: str) -> int:
        """Atomically add one failed attempt and return the new count."""
        ...

    async def delete(self, email: str) -> None: ...
