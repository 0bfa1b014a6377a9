"""Ordered per-category pipeline of change handlers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Awaitable, Callable, Iterable, Sequence

from .logger import get_logger
from .stores import FileCategory

if TYPE_CHECKING:
    from .workspace import Workspace

logger = get_logger(__name__)

# External producer of translation keys for a code file
KeyScanner = Callable[[Path], Awaitable[Iterable[str]]]


@dataclass
class ChangeContext:
    path: Path
    category: FileCategory
    new_raw_content: str | None = None


class ChangeHandler(ABC):
    """
    One stage of a change-handling chain.

    ``process`` returns True to let the next stage run, False to halt the
    chain (e.g. nothing changed).
    """

    def __init__(self):
        self._next: ChangeHandler | None = None

    def set_next(self, handler: ChangeHandler | None) -> ChangeHandler | None:
        self._next = handler
        return handler

    async def execute(self, context: ChangeContext) -> bool:
        if not await self.process(context):
            return False
        if self._next is not None:
            return await self._next.execute(context)
        return True

    @abstractmethod
    async def process(self, context: ChangeContext) -> bool:
        ...


class ChangeHandlerChain:
    """Links an ordered list of handlers once, at construction time."""

    def __init__(self, handlers: Sequence[ChangeHandler]):
        if not handlers:
            raise ValueError("A change handler chain needs at least one handler")
        self.handlers = list(handlers)
        for current, following in zip(self.handlers, self.handlers[1:]):
            current.set_next(following)
        self.handlers[-1].set_next(None)

    async def execute(self, context: ChangeContext) -> bool:
        """Run the chain; returns True if every stage asked to continue."""
        return await self.handlers[0].execute(context)


class ReadJsonFileModule(ChangeHandler):
    """Loads the changed file's text into the context when the event carries none."""

    def __init__(self, workspace: Workspace):
        super().__init__()
        self._workspace = workspace

    async def process(self, context: ChangeContext) -> bool:
        if context.new_raw_content is not None:
            return True
        try:
            context.new_raw_content = await self._workspace.read_text(context.path)
        except OSError as e:
            logger.error(f"Failed to read changed file {context.path}: {e}")
            return False
        return True


class KeyScanModule(ChangeHandler):
    """Hands a changed code file to the external translation key scanner."""

    def __init__(self, scanner: KeyScanner):
        super().__init__()
        self._scanner = scanner

    async def process(self, context: ChangeContext) -> bool:
        keys = list(await self._scanner(context.path))
        logger.debug(f"Scanned {len(keys)} translation keys from {context.path}")
        return True
