"""Routes file system events to the change-handling chains."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Callable, Iterable, Mapping

from .chain import ChangeContext, ChangeHandlerChain
from .locks import FileLockStore
from .logger import get_logger
from .stores import FileCategory, FileContentStore, FileLocationStore
from .utils import normalize_path
from .workspace import FileEvent, FileEventKind, Workspace

logger = get_logger(__name__)

DisableFlag = Callable[[], bool]


class FileWatchOrchestrator:
    """
    Maps created/changed/deleted events onto the stores and handler chains.

    Change events for a path holding a write lock are dropped, as are all
    change events while any disable flag is raised. Failures are contained
    per event: they are logged and never stop the watcher.
    """

    def __init__(
        self,
        workspace: Workspace,
        location_store: FileLocationStore,
        content_store: FileContentStore,
        lock_store: FileLockStore,
        chains: Mapping[FileCategory, ChangeHandlerChain],
        patterns: Mapping[FileCategory, Iterable[str]],
        disable_flags: Iterable[DisableFlag] = (),
    ):
        self._workspace = workspace
        self._location_store = location_store
        self._content_store = content_store
        self._lock_store = lock_store
        self._chains = dict(chains)
        self._patterns = {category: list(globs) for category, globs in patterns.items()}
        self._disable_flags = list(disable_flags)
        self._tasks: set[asyncio.Task] = set()
        # Chains for one path run one at a time, so a burst of events for a
        # single save diffs against the baseline the first run committed
        self._path_locks: dict[Path, asyncio.Lock] = {}
        # Baselines of deleted translation files, restored when an editor's
        # delete-and-rename save recreates the path
        self._deleted: dict[Path, Any] = {}

    def categorize(self, path: Path | str) -> FileCategory | None:
        """Category of ``path`` by tracking state, then by watched glob patterns."""
        category = self._location_store.category_of(path)
        if category is not None:
            return category
        for candidate, globs in self._patterns.items():
            if self._workspace.matches(path, globs):
                return candidate
        return None

    def is_disabled(self) -> bool:
        return any(flag() for flag in self._disable_flags)

    async def start(self, watch: bool = True) -> None:
        """Scan the workspace, load translation files and subscribe to events."""
        for category, globs in self._patterns.items():
            if category in self._chains or category == FileCategory.TRANSLATION:
                self._location_store.scan(self._workspace, globs, category)
        await self._content_store.initialize(self._location_store.files(FileCategory.TRANSLATION))

        watched = [
            glob
            for category, globs in self._patterns.items()
            if category in self._chains
            for glob in globs
        ]
        if watch and watched:
            self._workspace.watch(watched, self.dispatch)

    def dispatch(self, event: FileEvent) -> asyncio.Task:
        """Schedule handling of ``event`` on the running loop."""
        task = asyncio.get_running_loop().create_task(self.handle_event(event))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def handle_event(self, event: FileEvent) -> None:
        try:
            await self._handle_event(event)
        except Exception:
            logger.exception(f"Unhandled error while processing {event.kind.value} event for {event.path}")

    async def _handle_event(self, event: FileEvent) -> None:
        path = normalize_path(event.path)
        category = self.categorize(path)
        if category is None:
            return

        if event.kind == FileEventKind.DELETED:
            entry = self._content_store.get(path)
            if entry is not None:
                self._deleted[path] = entry.content
            self._location_store.remove(path)
            self._content_store.delete(path)
            logger.debug(f"Stopped tracking deleted file {path}")
            return

        if self._lock_store.has(path):
            logger.debug(f"Ignoring {event.kind.value} event for locked file {path}")
            return

        if event.kind == FileEventKind.CREATED:
            self._location_store.add_or_update(path, category)
            if category == FileCategory.TRANSLATION:
                baseline = self._deleted.pop(path, None)
                if baseline is not None:
                    self._content_store.restore(path, baseline)
                elif path not in self._content_store:
                    await self._content_store.add(path, category)
                    return
            # A tracked file replaced by a rename carries an edit like a change

        if self.is_disabled():
            logger.debug(f"Watchers disabled, ignoring change to {path}")
            return

        chain = self._chains.get(category)
        if chain is None:
            return
        lock = self._path_locks.setdefault(path, asyncio.Lock())
        async with lock:
            await chain.execute(ChangeContext(path=path, category=category))

    async def drain(self) -> None:
        """Wait for every in-flight event task to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    async def stop(self) -> None:
        await self._workspace.stop()
        await self.drain()
