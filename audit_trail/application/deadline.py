"""Caller deadlines for store-bound operations."""

import asyncio
from typing import Awaitable, Optional, TypeVar

from audit_trail.application.exceptions import OperationTimeoutError

T = TypeVar("T")


async def run_with_deadline(
    operation: str,
    awaitable: Awaitable[T],
    timeout_seconds: Optional[float],
) -> T:
    """
    Await with an optional deadline. On expiry the operation is cancelled and
    OperationTimeoutError is raised; a timed-out write is never reported as done.
    """
    if timeout_seconds is None:
        return await awaitable
    try:
        return await asyncio.wait_for(awaitable, timeout=timeout_seconds)
    except asyncio.TimeoutError as e:
        raise OperationTimeoutError(
            f"{operation} did not complete within {timeout_seconds}s"
        ) from e
