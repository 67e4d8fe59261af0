"""
Shared plumbing for MongoDB-backed repositories.

Every driver call goes through run_store_op(), which applies the store
timeout and translates driver failures into the AppError taxonomy:

- timeouts, lost connections, server selection failures → TransientStoreError
- any other PyMongoError (auth, schema validation, bad query) → PermanentStoreError

A timeout is always an error, never an empty result.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, TypeVar

from bson import ObjectId
from pymongo.errors import (
    ConnectionFailure,
    ExecutionTimeout,
    PyMongoError,
    WTimeoutError,
)

from errors import NotFoundError, PermanentStoreError, TransientStoreError
from shared.logging import get_logger

log = get_logger(__name__)

T = TypeVar("T")

DEFAULT_STORE_TIMEOUT = 5.0

_TRANSIENT_ERRORS = (ConnectionFailure, ExecutionTimeout, WTimeoutError)


async def run_store_op(
    awaitable: Awaitable[T], *, op: str, timeout: float = DEFAULT_STORE_TIMEOUT
) -> T:
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout)
    except asyncio.TimeoutError as e:
        log.error("store_op_timeout", op=op, timeout=timeout)
        raise TransientStoreError(f"{op} timed out after {timeout}s") from e
    except _TRANSIENT_ERRORS as e:
        log.error(
            "store_op_unavailable", op=op, error=str(e), error_type=type(e).__name__
        )
        raise TransientStoreError(f"{op} failed: store unavailable") from e
    except PyMongoError as e:
        log.error(
            "store_op_failed", op=op, error=str(e), error_type=type(e).__name__
        )
        raise PermanentStoreError(f"{op} failed") from e


def parse_object_id(value: str, *, resource: str = "Notification") -> ObjectId:
    """Parse a string id; malformed ids cannot exist, so they are NotFound."""
    if isinstance(value, ObjectId):
        return value
    if not isinstance(value, str) or not ObjectId.is_valid(value):
        raise NotFoundError(f"{resource} not found", details={"id": str(value)})
    return ObjectId(value)
