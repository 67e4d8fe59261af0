"""Redis-backed verification record store.

Each record is a hash at ``verification:{email}`` with fields code,
issued_at and attempts. Attempts are bumped with HINCRBY so concurrent
failures cannot undercount across processes.

The key TTL (retention) is a garbage-collection bound, not the validity
window: it is set longer than the code lifetime so an expired code is still
found and reported as expired rather than as missing.
"""

from typing import Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from errors import TransientStoreError
from schemas.models.verification import VerificationRecord
from shared.logging import get_logger

log = get_logger(__name__)


class RedisVerificationStore:
    def __init__(self, redis_client: aioredis.Redis, retention_seconds: int = 1200) -> None:
        self._redis = redis_client
        self.retention_seconds = retention_seconds

    def _key(self, email: str) -> str:
        return f"verification:{email}"

    def _unavailable(self, op: str, email: str, e: Exception) -> TransientStoreError:
        log.error(
            "verification_store_error",
            op=op,
            email=email,
            error=str(e),
            error_type=type(e).__name__,
        )
        return TransientStoreError("Verification store is unavailable")

    async def get(self, email: str) -> Optional[VerificationRecord]:
        try:
            raw = await self._redis.hgetall(self._key(email))
        except RedisError as e:
            raise self._unavailable("get", email, e) from e
        if not raw:
            return None
        if "code" not in raw:
            # HINCRBY raced with a delete and recreated a bare counter
            await self.delete(email)
            return None
        return VerificationRecord.from_redis(raw)

    async def put(self, email: str, record: VerificationRecord) -> None:
        key = self._key(email)
        try:
            async with self._redis.pipeline(transaction=True) as pipe:
                pipe.delete(key)
                pipe.hset(key, mapping=record.to_redis())
                pipe.expire(key, self.retention_seconds)
                await pipe.execute()
        except RedisError as e:
            raise self._unavailable("put", email, e) from e

    async def increment_attempts(self, email: str) -> int:
        try:
            return int(await self._redis.hincrby(self._key(email), "attempts", 1))
        except RedisError as e:
            raise self._unavailable("increment_attempts", email, e) from e

    async def delete(self, email: str) -> None:
        try:
            await self._redis.delete(self._key(email))
        except RedisError as e:
            raise self._unavailable("delete", email, e) from e
