"""Debounce Registry

Coalesces rapid repeated calls that share a key into the most recent one.

Each key holds at most one pending entry (a timer task plus the future its
caller awaits). A newer call for the same key supersedes the pending one:
its timer or in-flight work is cancelled and its caller receives
``ValidationCancelledError``. Different keys never interact, so no lock is
needed. Registries are plain objects owned by whoever issues the calls.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from formschema.errors import ValidationCancelledError
from formschema.logging import async_logger

T = TypeVar("T")


@dataclass(slots=True)
class PendingCall:
    """One debounced call waiting for its window to elapse."""
    key: Hashable
    loop: asyncio.AbstractEventLoop
    future: asyncio.Future
    task: asyncio.Task | None = field(default=None, repr=False)

    @property
    def is_stale(self) -> bool:
        """Bound to a loop other than the running one, or to a closed loop."""
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            return True
        return self.loop is not running or self.loop.is_closed()

    def supersede(self) -> None:
        """Reject the waiting caller and stop the timer or in-flight work."""
        if not self.future.done():
            self.future.set_exception(ValidationCancelledError(self.key))
        if self.task is not None and not self.task.done():
            self.task.cancel()


class DebounceRegistry:
    """Key-scoped debouncer for async validation calls.

    Usage:
        debouncer = DebounceRegistry()
        outcome = await debouncer.run(("username", 0, "refineAsync"), 300, lambda: check(value))
    """

    def __init__(self) -> None:
        self._pending: dict[Hashable, PendingCall] = {}

    def __len__(self) -> int:
        return len(self._pending)

    def __contains__(self, key: object) -> bool:
        return key in self._pending

    async def run(self, key: Hashable, delay_ms: int, fn: Callable[[], Awaitable[T]]) -> T:
        """Run ``fn`` after ``delay_ms`` unless a newer call for ``key`` arrives first.

        Raises:
            ValidationCancelledError: this call was superseded.
        """
        loop = asyncio.get_running_loop()
        if (previous := self._pending.pop(key, None)) is not None:
            if previous.is_stale:
                async_logger().debug("debounce_stale_entry_dropped", key=repr(key))
            else:
                async_logger().debug("debounce_superseded", key=repr(key))
                previous.supersede()

        entry = PendingCall(key=key, loop=loop, future=loop.create_future())
        entry.task = loop.create_task(self._fire(entry, delay_ms, fn))
        self._pending[key] = entry
        return await entry.future

    async def _fire(self, entry: PendingCall, delay_ms: int, fn: Callable[[], Awaitable[Any]]) -> None:
        try:
            await asyncio.sleep(delay_ms / 1000)
            result = await fn()
        except asyncio.CancelledError:
            if not entry.future.done():
                entry.future.set_exception(ValidationCancelledError(entry.key))
            raise
        except Exception as exc:
            if not entry.future.done():
                entry.future.set_exception(exc)
        else:
            if not entry.future.done():
                entry.future.set_result(result)
        finally:
            # Only the current entry may clear its key; a superseded one must not evict its successor.
            if self._pending.get(entry.key) is entry:
                del self._pending[entry.key]

    def cancel(self, key: Hashable) -> bool:
        """Supersede the pending call for ``key``. Returns False when none is pending."""
        if (entry := self._pending.pop(key, None)) is None:
            return False
        if not entry.is_stale:
            entry.supersede()
        return True

    def cancel_all(self) -> int:
        """Supersede every pending call; returns how many were pending."""
        entries, self._pending = list(self._pending.values()), {}
        for entry in entries:
            if not entry.is_stale:
                entry.supersede()
        return len(entries)
