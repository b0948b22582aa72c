"""Session Allocator — pick a free tmux session name from a fixed pool.

Names are tried in pool order and the first one without a live session
wins, so the choice is deterministic for a given set of live sessions.
Two podstart runs racing for the same name are not coordinated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

logger = logging.getLogger(__name__)

PHONETIC_ALPHABET: tuple[str, ...] = (
    "alpha", "bravo", "charlie", "delta", "echo", "foxtrot", "golf", "hotel",
    "india", "juliet", "kilo", "lima", "mike", "november", "oscar", "papa",
    "quebec", "romeo", "sierra", "tango", "uniform", "victor", "whiskey",
    "xray", "yankee", "zulu",
)  # fmt: skip


class SessionPoolExhausted(RuntimeError):
    """Every name in the pool is bound to a live session."""

    def __init__(self, pool: Sequence[str]) -> None:
        self.pool = tuple(pool)
        super().__init__(
            f"All session names are in use ({self.pool[0]} through {self.pool[-1]}).\n"
            "Close an existing tmux session and try again."
        )


def validate_pool(names: Sequence[str]) -> tuple[str, ...]:
    """Return *names* as a tuple, rejecting an empty or repetitive pool."""
    pool = tuple(names)
    if not pool:
        raise ValueError("Session name pool must not be empty.")
    if any(not name or not isinstance(name, str) for name in pool):
        raise ValueError("Session names must be non-empty strings.")
    if len(set(pool)) != len(pool):
        raise ValueError("Session names must be unique.")
    bad = [name for name in pool if any(c in name for c in ".: ")]
    if bad:
        raise ValueError(f"Invalid tmux session name(s): {', '.join(bad)}")
    return pool


class SessionAllocator:
    """Allocates the first pool name for which no session exists."""

    def __init__(self, names: Sequence[str], session_exists: Callable[[str], bool]) -> None:
        self.names = validate_pool(names)
        self._session_exists = session_exists

    def allocate(self) -> str:
        for name in self.names:
            if not self._session_exists(name):
                logger.info("Allocated session name '%s'", name)
                return name
        raise SessionPoolExhausted(self.names)
