"""Workspace file system access and watching."""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Callable, Iterable

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from .logger import get_logger
from .utils import glob_match, normalize_path

logger = get_logger(__name__)

DEFAULT_EXCLUDE_DIRS = ("node_modules", ".next", ".git", ".venv")


class FileEventKind(str, Enum):
    CREATED = "created"
    CHANGED = "changed"
    DELETED = "deleted"


@dataclass(frozen=True)
class FileEvent:
    kind: FileEventKind
    path: Path


def _read(path: Path) -> str:
    # newline="" keeps CRLF line endings intact
    with open(path, encoding="utf-8", newline="") as f:
        return f.read()


def _write(path: Path, text: str) -> None:
    with open(path, "w", encoding="utf-8", newline="") as f:
        f.write(text)


class WorkspaceEventHandler(FileSystemEventHandler):
    """Translates watchdog events into FileEvents delivered on the asyncio loop."""

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        callback: Callable[[FileEvent], None],
        accepts: Callable[[Path], bool],
    ):
        super().__init__()
        self._loop = loop
        self._callback = callback
        self._accepts = accepts

    def _emit(self, kind: FileEventKind, src_path) -> None:
        if isinstance(src_path, bytes):
            src_path = src_path.decode()
        path = Path(src_path)
        if not self._accepts(path):
            return
        self._loop.call_soon_threadsafe(self._callback, FileEvent(kind, path))

    def on_created(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(FileEventKind.CREATED, event.src_path)

    def on_modified(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(FileEventKind.CHANGED, event.src_path)

    def on_deleted(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(FileEventKind.DELETED, event.src_path)

    def on_moved(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._emit(FileEventKind.DELETED, event.src_path)
            self._emit(FileEventKind.CREATED, event.dest_path)


class Workspace:
    """
    File system rooted at a workspace directory.

    Reads and writes run in a worker thread so the event loop is only
    suspended at I/O boundaries. Directories named in ``exclude_dirs`` are
    ignored by every glob search and watch, and both use ``glob_match`` so
    a file found by the initial scan is also recognized when it changes.
    """

    def __init__(self, root: Path | str, exclude_dirs: Iterable[str] = DEFAULT_EXCLUDE_DIRS):
        self.root = normalize_path(root)
        self.exclude_dirs = tuple(exclude_dirs)
        self._observer = None

    def is_excluded(self, path: Path | str) -> bool:
        try:
            relative = normalize_path(path).relative_to(self.root)
        except ValueError:
            return True
        return any(part in self.exclude_dirs for part in relative.parts[:-1])

    def matches(self, path: Path | str, patterns: Iterable[str]) -> bool:
        """True when ``path`` lies in the workspace, is not excluded and matches a pattern."""
        path = normalize_path(path)
        if self.is_excluded(path):
            return False
        relative = path.relative_to(self.root)
        return any(glob_match(relative, pattern) for pattern in patterns)

    async def read_text(self, path: Path | str) -> str:
        return await asyncio.to_thread(_read, Path(path))

    async def write_text(self, path: Path | str, text: str) -> None:
        await asyncio.to_thread(_write, Path(path), text)

    def find_files(self, pattern: str) -> list[Path]:
        """Files under the root matching a glob pattern, minus excluded directories."""
        found = []
        for dirpath, dirnames, filenames in os.walk(self.root):
            dirnames[:] = [name for name in dirnames if name not in self.exclude_dirs]
            for filename in filenames:
                path = Path(dirpath) / filename
                if glob_match(path.relative_to(self.root), pattern):
                    found.append(normalize_path(path))
        return sorted(found)

    @property
    def is_watching(self) -> bool:
        return self._observer is not None

    def watch(self, patterns: Iterable[str], callback: Callable[[FileEvent], None]) -> None:
        """
        Start watching the workspace for files matching ``patterns``.

        ``callback`` is invoked on the running event loop's thread for every
        created, changed or deleted file.
        """
        loop = asyncio.get_running_loop()
        patterns = list(patterns)
        handler = WorkspaceEventHandler(loop, callback, lambda path: self.matches(path, patterns))

        if self._observer is None:
            self._observer = Observer()
            self._observer.start()
        self._observer.schedule(handler, str(self.root), recursive=True)
        logger.info(f"Watching {self.root} for {', '.join(patterns)}")

    async def stop(self) -> None:
        if self._observer is None:
            return
        observer, self._observer = self._observer, None
        observer.stop()
        # join() blocks until the observer thread exits
        await asyncio.to_thread(observer.join)
