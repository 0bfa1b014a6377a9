"""Utility functions for i18n-openai-sync."""

from __future__ import annotations

import fnmatch
import json
import re
from pathlib import Path, PurePath, PurePosixPath

import pycountry

from .exceptions import MalformedInputError

DEFAULT_INDENTATION = 2

_INDENT_RE = re.compile(r"\n([ \t]+)\S")


def get_language_name(code: str) -> str:
    """
    Get the full language name from a locale code.

    Accepts plain ISO 639-1/639-3 codes as well as region-qualified locales
    ('pt-BR', 'en_US'), falling back to the language part.

    Args:
        code: Locale code (e.g., 'de', 'fr', 'pt-BR')

    Returns:
        Full language name (e.g., 'German', 'French', 'Portuguese (BR)')

    Raises:
        ValueError: If the language code is not recognized
    """
    # Handle some common special cases
    special_cases = {
        "zh": "Chinese",
        "zh-cn": "Chinese (Simplified)",
        "zh-hans": "Chinese (Simplified)",
        "zh-tw": "Chinese (Traditional)",
        "zh-hant": "Chinese (Traditional)",
    }

    code_lower = code.lower().replace("_", "-")
    if code_lower in special_cases:
        return special_cases[code_lower]

    language_part, _, region = code_lower.partition("-")

    language = pycountry.languages.get(alpha_2=language_part)
    if language is None:
        language = pycountry.languages.get(alpha_3=language_part)
    if language is None:
        raise ValueError(f"Unknown language code: {code}")

    if region:
        return f"{language.name} ({region.upper()})"
    return language.name


def locale_from_path(path: Path) -> str:
    """Return the locale of a '<locale-directory>/<namespace>.json' file."""
    return Path(path).parent.name


def namespace_from_path(path: Path) -> str:
    """Return the namespace of a '<locale-directory>/<namespace>.json' file."""
    return Path(path).stem


def parse_json(text: str, path: Path | str | None = None):
    """
    Parse JSON text into a tree.

    Raises:
        MalformedInputError: If the text is not valid JSON
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError) as e:
        where = f" in {path}" if path else ""
        raise MalformedInputError(f"Invalid JSON{where}: {e}", str(path) if path else None) from e


def detect_indentation(text: str) -> int | str:
    """Return the indentation unit used by a JSON document (width or tab)."""
    match = _INDENT_RE.search(text)
    if not match:
        return DEFAULT_INDENTATION
    indent = match.group(1)
    if indent.startswith("\t"):
        return "\t"
    return len(indent)


def detect_line_ending(text: str) -> str:
    return "\r\n" if "\r\n" in text else "\n"


def serialize_json(
    data,
    indent: int | str = DEFAULT_INDENTATION,
    trailing_newline: bool = False,
    line_ending: str = "\n",
) -> str:
    """
    Serialize a tree the way locale files are laid out on disk.

    Args:
        data: JSON tree to serialize
        indent: Indentation width, or '\\t' for tabs
        trailing_newline: Whether the output ends with a line break
        line_ending: '\\n' or '\\r\\n'

    Returns:
        The serialized text
    """
    text = json.dumps(data, ensure_ascii=False, indent=indent)
    if trailing_newline:
        text += "\n"
    if line_ending != "\n":
        text = text.replace("\n", line_ending)
    return text


def normalize_path(path: Path | str) -> Path:
    """Absolute, symlink-free form used as the identity of a tracked file."""
    return Path(path).resolve()


def _match_parts(parts: tuple[str, ...], pattern: tuple[str, ...]) -> bool:
    if not pattern:
        return not parts
    head, rest = pattern[0], pattern[1:]
    if head == "**":
        return any(_match_parts(parts[i:], rest) for i in range(len(parts) + 1))
    return bool(parts) and fnmatch.fnmatchcase(parts[0], head) and _match_parts(parts[1:], rest)


def glob_match(relative: PurePath | str, pattern: str) -> bool:
    """
    Match a workspace-relative path against a glob pattern.

    ``*`` and ``?`` never cross a directory separator; a ``**`` segment
    matches zero or more whole directories anywhere in the pattern.
    """
    return _match_parts(PurePath(relative).parts, PurePosixPath(pattern).parts)
