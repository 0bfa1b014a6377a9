"""Propagates source locale changes to sibling locale files."""

from __future__ import annotations

import copy
from dataclasses import replace
from pathlib import Path
from typing import TYPE_CHECKING, Any

from .chain import ChangeContext, ChangeHandler
from .diff import DiffEntry, DiffKind, has_path, resolve_path, set_path, unset_path
from .exceptions import MalformedInputError, ProviderFailure
from .locks import FileLockStore
from .logger import get_logger
from .status import StatusIndicator, StatusState
from .stores import FileContentStore, FileLocationStore
from .translator import TranslationProvider
from .utils import (
    detect_indentation,
    detect_line_ending,
    locale_from_path,
    parse_json,
    serialize_json,
)

if TYPE_CHECKING:
    from .workspace import Workspace

logger = get_logger(__name__)

TRANSLATABLE_KINDS = (DiffKind.ADDED, DiffKind.EDITED)


def _string_leaves(value) -> list[str]:
    """All string leaves of a value, depth first."""
    if isinstance(value, str):
        return [value]
    if isinstance(value, dict):
        return [leaf for child in value.values() for leaf in _string_leaves(child)]
    if isinstance(value, list):
        return [leaf for child in value for leaf in _string_leaves(child)]
    return []


def _replace_string_leaves(value, translated: dict[str, str]):
    """Copy of ``value`` with non-empty string leaves swapped for their translation."""
    if isinstance(value, str):
        return translated.get(value, value) if value else value
    if isinstance(value, dict):
        return {k: _replace_string_leaves(v, translated) for k, v in value.items()}
    if isinstance(value, list):
        return [_replace_string_leaves(v, translated) for v in value]
    return value


def is_relevant_change(entry: DiffEntry) -> bool:
    """Added or edited entries carrying at least one non-empty string."""
    if entry.kind not in TRANSLATABLE_KINDS:
        return False
    if entry.new_value == "" or entry.new_value is None:
        return False
    return any(leaf != "" for leaf in _string_leaves(entry.new_value))


def extract_relevant_changes(diffs: list[DiffEntry]) -> list[DiffEntry]:
    return [entry for entry in diffs if is_relevant_change(entry)]


def is_missing_translation(tree, path) -> bool:
    """True when ``path`` is absent, null or an empty string in ``tree``."""
    value = resolve_path(tree, path)
    return value is None or value == ""


def can_apply(tree, path) -> bool:
    """True when ``path`` resolves in ``tree`` or its parent is an object the key can be added to."""
    return has_path(tree, path) or isinstance(resolve_path(tree, path[:-1]), dict)


def apply_translated_entries(tree, entries: list[DiffEntry]) -> int:
    """
    Apply translated entries to a sibling tree in place.

    Deleted entries remove their path. Added and edited entries only write
    where the path already resolves in ``tree``, or where its parent is an
    existing object the key can be added to, so a diff never reshapes a file
    whose structure differs from the source.

    Returns:
        Number of entries applied
    """
    applied = 0
    for entry in entries:
        if not entry.path:
            continue
        if entry.kind == DiffKind.DELETED:
            if unset_path(tree, entry.path):
                applied += 1
        elif entry.kind in TRANSLATABLE_KINDS:
            if can_apply(tree, entry.path):
                set_path(tree, entry.path, copy.deepcopy(entry.new_value))
                applied += 1
            else:
                logger.debug(f"Skipping {'.'.join(map(str, entry.path))}: path not present in target")
    return applied


class TranslationSyncModule(ChangeHandler):
    """
    Translates changes of one locale file into every sibling locale file.

    For a change event the module diffs the new text against the stored
    baseline, keeps the added or edited entries that carry text, asks the
    provider to translate only the values each sibling is missing, and
    writes the results under a write lock so the watcher ignores the
    pipeline's own writes.
    """

    def __init__(
        self,
        workspace: Workspace,
        content_store: FileContentStore,
        location_store: FileLocationStore,
        lock_store: FileLockStore,
        provider: TranslationProvider,
        status: StatusIndicator,
        indentation: int | str | None = None,
    ):
        super().__init__()
        self._workspace = workspace
        self._content_store = content_store
        self._location_store = location_store
        self._lock_store = lock_store
        self._provider = provider
        self._status = status
        self._indentation = indentation

    async def process(self, context: ChangeContext) -> bool:
        if context.new_raw_content is None:
            return False

        try:
            diffs = self._content_store.get_diffs(context.path, context.new_raw_content)
        except MalformedInputError as e:
            logger.warning(f"Skipping {context.path}: {e}")
            return False

        if not diffs:
            logger.debug(f"No diffs found for file {context.path}. Skipping.")
            return False

        self._location_store.add_or_update(context.path, context.category)

        changes = extract_relevant_changes(diffs)
        if not changes:
            logger.debug("No diff changes to translate. Skipping.")
            self._content_store.update(context.path, context.new_raw_content)
            return False

        try:
            self._status.set_state(StatusState.RUNNING, "Translating changes...")

            source_locale = locale_from_path(context.path)
            siblings = self._location_store.siblings_of(context.path)
            translations = await self._translate_changes(source_locale, changes, siblings)
            written = await self._apply_translations(siblings, translations)

            self._content_store.update(context.path, context.new_raw_content)
            logger.info(
                f"Synchronized {len(changes)} changes from {context.path} "
                f"into {len(written)} of {len(siblings)} sibling files"
            )
        except (ProviderFailure, MalformedInputError, OSError) as e:
            logger.error(f"Error translating changes: {e}")
            return False
        finally:
            self._status.set_idle()

        return True

    async def _read_tree(self, path: Path) -> tuple[str, Any] | None:
        """Read and parse a sibling; failures are logged and yield None."""
        try:
            raw = await self._workspace.read_text(path)
            return raw, parse_json(raw, path)
        except (OSError, MalformedInputError) as e:
            logger.error(f"Failed to parse JSON content from file {path}: {e}")
            return None

    async def _translate_changes(
        self,
        source_locale: str,
        changes: list[DiffEntry],
        siblings: list[Path],
    ) -> dict[Path, list[DiffEntry]]:
        """
        Translate, per sibling, the changed values that sibling is missing.

        Raises:
            ProviderFailure: If a provider call fails; nothing has been
                written at that point
        """
        translations: dict[Path, list[DiffEntry]] = {}

        for sibling in siblings:
            target_locale = locale_from_path(sibling)
            loaded = await self._read_tree(sibling)
            if loaded is None:
                continue
            _, content = loaded

            candidates = [
                c for c in changes
                if is_missing_translation(content, c.path) and can_apply(content, c.path)
            ]
            if not candidates:
                continue

            values = list(dict.fromkeys(
                leaf for c in candidates for leaf in _string_leaves(c.new_value) if leaf != ""
            ))
            translated_values = await self._provider.translate_batch(values, source_locale, target_locale)
            if len(translated_values) != len(values):
                raise ProviderFailure(
                    f"Provider returned {len(translated_values)} values for {len(values)} inputs",
                    code="count_mismatch",
                )

            lookup = dict(zip(values, translated_values))
            translations[sibling] = [
                replace(c, new_value=_replace_string_leaves(c.new_value, lookup))
                for c in candidates
            ]

        return translations

    async def _apply_translations(
        self,
        siblings: list[Path],
        translations: dict[Path, list[DiffEntry]],
    ) -> list[Path]:
        """
        Write translated entries into each sibling, one file at a time.

        Raises:
            OSError: If a write fails; remaining siblings are not processed
        """
        written = []
        for sibling in siblings:
            entries = translations.get(sibling)
            if not entries:
                continue
            if self._lock_store.has(sibling):
                logger.debug(f"{sibling} is locked by an in-flight write. Skipping.")
                continue

            # Re-read so concurrent unrelated edits since translation are kept
            loaded = await self._read_tree(sibling)
            if loaded is None:
                continue
            raw, content = loaded
            # Another write may have started while the file was being read
            if self._lock_store.has(sibling):
                logger.debug(f"{sibling} was locked while it was read. Skipping.")
                continue
            original = copy.deepcopy(content)

            if not apply_translated_entries(content, entries) or content == original:
                continue

            indent = self._indentation if self._indentation is not None else detect_indentation(raw)
            serialized = serialize_json(
                content,
                indent=indent,
                trailing_newline=raw.endswith("\n"),
                line_ending=detect_line_ending(raw),
            )

            self._lock_store.acquire(sibling)
            try:
                await self._workspace.write_text(sibling, serialized)
            finally:
                self._lock_store.release(sibling)

            self._content_store.update(sibling, serialized)
            written.append(sibling)
            logger.info(f"Wrote {len(entries)} translations to {sibling}")

        return written
