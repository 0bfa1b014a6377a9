"""Tracks locale files that have an in-flight write issued by the pipeline."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .logger import get_logger
from .utils import normalize_path

logger = get_logger(__name__)

DEFAULT_GRACE_DELAY = 0.5

# (delay_seconds, callback) -> handle with a cancel() method
Scheduler = Callable[[float, Callable[[], None]], Any]


def _loop_scheduler(delay: float, callback: Callable[[], None]):
    return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class LockEntry:
    path: Path
    acquired_at: float


class FileLockStore:
    """
    Self-write suppression for the file watcher.

    A lock is acquired right before the pipeline writes a file and released a
    grace delay after the write completes, because change notifications may
    arrive after the write call returns. Watch events for a locked path are
    dropped.
    """

    def __init__(
        self,
        grace_delay: float = DEFAULT_GRACE_DELAY,
        scheduler: Scheduler | None = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.grace_delay = grace_delay
        self._scheduler = scheduler or _loop_scheduler
        self._clock = clock
        self._locks: dict[str, LockEntry] = {}
        self._pending_releases: dict[str, Any] = {}

    @staticmethod
    def _key(path: Path | str) -> str:
        return str(normalize_path(path))

    def acquire(self, path: Path | str) -> None:
        key = self._key(path)
        # A new write supersedes a release still waiting from an earlier one
        handle = self._pending_releases.pop(key, None)
        if handle is not None:
            handle.cancel()
        self._locks[key] = LockEntry(Path(key), self._clock())
        logger.debug(f"Acquired write lock for {key}")

    def release(self, path: Path | str):
        """Schedule the lock on ``path`` to be dropped after the grace delay."""
        key = self._key(path)
        previous = self._pending_releases.pop(key, None)
        if previous is not None:
            previous.cancel()
        handle = self._scheduler(self.grace_delay, lambda: self._expire(key))
        self._pending_releases[key] = handle
        return handle

    def release_now(self, path: Path | str) -> None:
        key = self._key(path)
        handle = self._pending_releases.pop(key, None)
        if handle is not None:
            handle.cancel()
        self._locks.pop(key, None)

    def has(self, path: Path | str) -> bool:
        return self._key(path) in self._locks

    def get(self, path: Path | str) -> LockEntry | None:
        return self._locks.get(self._key(path))

    def _expire(self, key: str) -> None:
        self._pending_releases.pop(key, None)
        if self._locks.pop(key, None) is not None:
            logger.debug(f"Released write lock for {key}")

    def dispose(self) -> None:
        """Cancel pending releases and drop every lock."""
        for handle in self._pending_releases.values():
            handle.cancel()
        self._pending_releases.clear()
        self._locks.clear()

    def __len__(self) -> int:
        return len(self._locks)
