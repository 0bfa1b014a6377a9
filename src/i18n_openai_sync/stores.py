"""In-memory indexes of tracked files and their parsed contents."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Any, Iterable

from .diff import DiffEntry, diff_trees, resolve_path
from .exceptions import MalformedInputError
from .logger import get_logger
from .utils import locale_from_path, namespace_from_path, normalize_path, parse_json

if TYPE_CHECKING:
    from .workspace import Workspace

logger = get_logger(__name__)


class FileCategory(str, Enum):
    TRANSLATION = "translation"
    CODE = "code"


@dataclass
class TranslationFile:
    path: Path
    locale: str
    namespace: str
    content: Any = field(default_factory=dict)
    category: FileCategory = FileCategory.TRANSLATION


class FileLocationStore:
    """Ordered index of tracked file paths per category."""

    def __init__(self):
        self._paths: dict[FileCategory, dict[Path, None]] = {
            category: {} for category in FileCategory
        }

    def scan(self, workspace: Workspace, patterns: Iterable[str], category: FileCategory) -> list[Path]:
        """Register every workspace file matching ``patterns`` under ``category``."""
        found = []
        for pattern in patterns:
            for path in workspace.find_files(pattern):
                self.add_or_update(path, category)
                found.append(path)
        logger.info(f"Found {len(found)} {category.value} files")
        return found

    def add_or_update(self, path: Path | str, category: FileCategory = FileCategory.TRANSLATION) -> Path:
        path = normalize_path(path)
        for other, paths in self._paths.items():
            if other != category:
                paths.pop(path, None)
        self._paths[category][path] = None
        return path

    def remove(self, path: Path | str) -> bool:
        path = normalize_path(path)
        removed = False
        for paths in self._paths.values():
            if path in paths:
                del paths[path]
                removed = True
        return removed

    def category_of(self, path: Path | str) -> FileCategory | None:
        path = normalize_path(path)
        for category, paths in self._paths.items():
            if path in paths:
                return category
        return None

    def files(self, category: FileCategory = FileCategory.TRANSLATION) -> list[Path]:
        return list(self._paths[category])

    def siblings_of(self, path: Path | str) -> list[Path]:
        """Translation files sharing ``path``'s file name in other locale directories."""
        path = normalize_path(path)
        return [
            other
            for other in self._paths[FileCategory.TRANSLATION]
            if other != path and other.name == path.name
        ]


class FileContentStore:
    """
    Parsed content of every tracked translation file.

    This is the diff baseline: ``get_diffs`` compares new raw text against the
    content recorded here, and ``update`` commits new text as the baseline.
    All mutations are synchronous so concurrent event handlers never observe
    a half-updated entry.
    """

    def __init__(self, workspace: Workspace):
        self._workspace = workspace
        self._files: dict[Path, TranslationFile] = {}

    async def initialize(self, paths: Iterable[Path]) -> int:
        """Load every file in ``paths``; unreadable or malformed files are skipped."""
        logger.info("Initializing translation content store")
        count = 0
        for path in paths:
            if await self.add(path):
                count += 1
        logger.info(f"Added {count} translation files to store")
        return count

    async def add(self, path: Path | str, category: FileCategory = FileCategory.TRANSLATION) -> bool:
        """Read and register a newly discovered file. Returns False if it was skipped."""
        path = normalize_path(path)
        if path.suffix != ".json":
            return False
        try:
            raw = await self._workspace.read_text(path)
            content = parse_json(raw, path)
        except (OSError, MalformedInputError) as e:
            logger.error(f"Failed to load translation file {path}: {e}")
            return False
        self._set(path, content, category)
        logger.debug(f"Added translation file {path} to store")
        return True

    def _set(self, path: Path, content, category: FileCategory | None = None) -> None:
        existing = self._files.get(path)
        if existing is not None:
            existing.content = content
            if category is not None:
                existing.category = category
            return
        self._files[path] = TranslationFile(
            path=path,
            locale=locale_from_path(path),
            namespace=namespace_from_path(path),
            content=content,
            category=category or FileCategory.TRANSLATION,
        )

    def get_diffs(self, path: Path | str, new_raw_content: str) -> list[DiffEntry]:
        """
        Diff the stored content of ``path`` against ``new_raw_content``.

        An untracked path is compared against an empty object.

        Raises:
            MalformedInputError: If ``new_raw_content`` is not valid JSON
        """
        path = normalize_path(path)
        new_content = parse_json(new_raw_content, path)
        entry = self._files.get(path)
        old_content = entry.content if entry is not None else {}
        return diff_trees(old_content, new_content)

    def update(self, path: Path | str, raw_content: str) -> None:
        """
        Replace the stored content of ``path`` with parsed ``raw_content``.

        Raises:
            MalformedInputError: If ``raw_content`` is not valid JSON
        """
        path = normalize_path(path)
        self._set(path, parse_json(raw_content, path))
        logger.debug(f"Updated translation file {path} in store")

    def restore(self, path: Path | str, content) -> None:
        """Reinstate a baseline recorded before ``path`` was deleted."""
        self._set(normalize_path(path), content, FileCategory.TRANSLATION)
        logger.debug(f"Restored baseline of translation file {path}")

    def delete(self, path: Path | str) -> bool:
        path = normalize_path(path)
        if self._files.pop(path, None) is None:
            return False
        logger.debug(f"Deleted translation file {path} from store")
        return True

    def get(self, path: Path | str) -> TranslationFile | None:
        return self._files.get(normalize_path(path))

    def get_by_category(self, category: FileCategory) -> list[TranslationFile]:
        return [f for f in self._files.values() if f.category == category]

    def _find(self, namespace: str, locale: str | None) -> list[TranslationFile]:
        return [
            f
            for f in self._files.values()
            if f.namespace == namespace and (locale is None or f.locale == locale)
        ]

    def get_translation_value(
        self,
        namespace: str,
        key: str,
        locale: str | None = None,
        key_separator: str = ".",
    ) -> Any:
        """
        Look up the value of ``namespace:key``.

        Args:
            namespace: Namespace (file stem)
            key: Key path joined with ``key_separator``
            locale: Locale to read from; the first tracked locale holding the
                key wins when omitted

        Returns:
            The stored value, or None when not found
        """
        segments = key.split(key_separator)
        for translation_file in self._find(namespace, locale):
            value = resolve_path(translation_file.content, segments)
            if value is not None:
                return value
        return None

    def get_translation_keys(
        self,
        namespace: str,
        locale: str | None = None,
        key_separator: str = ".",
    ) -> list[str]:
        """Return the sorted leaf key paths of a namespace."""
        keys: set[str] = set()

        def walk(node, prefix: str) -> None:
            if isinstance(node, dict):
                for k, v in node.items():
                    walk(v, f"{prefix}{key_separator}{k}" if prefix else k)
            elif prefix:
                keys.add(prefix)

        for translation_file in self._find(namespace, locale):
            walk(translation_file.content, "")
        return sorted(keys)

    def __contains__(self, path) -> bool:
        return normalize_path(path) in self._files

    def __len__(self) -> int:
        return len(self._files)
