"""Resilience Patterns for Async Rules

Bounds and coalesces long-running validation calls:
- Timeout policy that reports expiry as a Result
- Debounce registry that supersedes stale calls per key
"""
from .debounce import (
    DebounceRegistry,
    PendingCall,
)

from .timeout import (
    TimeoutElapsed,
    TimeoutPolicy,
    with_timeout,
)

__all__ = [
    # Debounce
    "DebounceRegistry",
    "PendingCall",
    # Timeout
    "TimeoutElapsed",
    "TimeoutPolicy",
    "with_timeout",
]
