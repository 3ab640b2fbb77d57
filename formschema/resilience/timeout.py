"""Timeout Policy for Async Rules

Races a coroutine against a deadline and reports expiry as a value instead of
an exception, so callers can turn it into a validation error.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, TypeVar

from formschema.errors import Err, Ok, Result

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class TimeoutElapsed:
    """The wrapped operation did not settle within its deadline."""
    operation: str
    timeout_ms: int

    @property
    def message(self) -> str:
        return f"Async validation timed out after {self.timeout_ms}ms"


class TimeoutPolicy(Generic[T]):
    """Timeout wrapper for async operations.

    Exceptions raised by the operation propagate unchanged; only expiry is
    folded into the Result.

    Usage:
        policy = TimeoutPolicy(timeout_ms=5000)
        match await policy.execute(lambda: check_username(value)):
            case Ok(outcome): ...
            case Err(elapsed): ...
    """

    def __init__(self, timeout_ms: int, operation_name: str = "operation"):
        if timeout_ms <= 0:
            raise ValueError(f"timeout_ms must be positive, got {timeout_ms}")
        self.timeout_ms = timeout_ms
        self.operation_name = operation_name

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    async def execute(self, fn: Callable[[], Awaitable[T]]) -> Result[T, TimeoutElapsed]:
        """Execute function with timeout."""
        try:
            return Ok(await asyncio.wait_for(fn(), timeout=self.timeout_seconds))
        except asyncio.TimeoutError:
            return Err(TimeoutElapsed(self.operation_name, self.timeout_ms))


async def with_timeout(fn: Callable[[], Awaitable[T]], timeout_ms: int,
                       operation_name: str = "operation") -> Result[T, TimeoutElapsed]:
    """One-shot form of ``TimeoutPolicy(...).execute(fn)``."""
    return await TimeoutPolicy[T](timeout_ms, operation_name).execute(fn)
