"""Structural diff of JSON trees."""

from __future__ import annotations

import copy
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterable

from .exceptions import MalformedInputError

PathSegment = str | int

_MISSING = object()


class DiffKind(str, Enum):
    ADDED = "added"
    EDITED = "edited"
    DELETED = "deleted"
    ARRAY_CHANGE = "array_change"


@dataclass(frozen=True)
class DiffEntry:
    """
    One detected change between two JSON trees.

    For ARRAY_CHANGE entries, ``path`` addresses the array, ``index`` the
    element position and ``item`` holds the nested ADDED or DELETED change of
    that element.
    """

    kind: DiffKind
    path: tuple[PathSegment, ...]
    old_value: Any = None
    new_value: Any = None
    index: int | None = None
    item: DiffEntry | None = None


def _validate_tree(value, path: tuple = ()) -> None:
    if value is None or isinstance(value, (str, bool, int, float)):
        return
    if isinstance(value, dict):
        for key, child in value.items():
            if not isinstance(key, str):
                raise MalformedInputError(f"Non-string object key {key!r} at {list(path)}")
            _validate_tree(child, path + (key,))
        return
    if isinstance(value, list):
        for index, child in enumerate(value):
            _validate_tree(child, path + (index,))
        return
    raise MalformedInputError(f"Unsupported value of type {type(value).__name__} at {list(path)}")


def _same_type(old, new) -> bool:
    # bool is a subclass of int, so compare exact JSON kinds
    def kind(value):
        if isinstance(value, bool):
            return "bool"
        if isinstance(value, (int, float)):
            return "number"
        return type(value)

    return kind(old) == kind(new)


def _diff(old, new, path: tuple, out: list[DiffEntry]) -> None:
    if isinstance(old, dict) and isinstance(new, dict):
        for key, old_value in old.items():
            if key not in new:
                out.append(DiffEntry(DiffKind.DELETED, path + (key,), old_value=old_value))
            else:
                _diff(old_value, new[key], path + (key,), out)
        for key, new_value in new.items():
            if key not in old:
                out.append(DiffEntry(DiffKind.ADDED, path + (key,), new_value=new_value))
        return

    if isinstance(old, list) and isinstance(new, list):
        common = min(len(old), len(new))
        # Trailing removals are reported from the end so they can be applied in order
        for index in range(len(old) - 1, common - 1, -1):
            out.append(
                DiffEntry(
                    DiffKind.ARRAY_CHANGE,
                    path,
                    index=index,
                    item=DiffEntry(DiffKind.DELETED, (), old_value=old[index]),
                )
            )
        for index in range(common, len(new)):
            out.append(
                DiffEntry(
                    DiffKind.ARRAY_CHANGE,
                    path,
                    index=index,
                    item=DiffEntry(DiffKind.ADDED, (), new_value=new[index]),
                )
            )
        for index in range(common):
            _diff(old[index], new[index], path + (index,), out)
        return

    if not _same_type(old, new) or old != new:
        out.append(DiffEntry(DiffKind.EDITED, path, old_value=old, new_value=new))


def diff_trees(old, new) -> list[DiffEntry]:
    """
    Compute the ordered list of changes turning ``old`` into ``new``.

    Object keys are visited in the old tree's order first (deletions and
    nested edits), followed by keys only present in the new tree. Added and
    deleted subtrees are reported once at their root.

    Raises:
        MalformedInputError: If either input is not a JSON tree
    """
    _validate_tree(old)
    _validate_tree(new)
    entries: list[DiffEntry] = []
    _diff(old, new, (), entries)
    return entries


def resolve_path(tree, path: Iterable[PathSegment], default=None):
    """Follow ``path`` through ``tree`` and return the value found, or ``default``."""
    current = tree
    for segment in path:
        if isinstance(current, dict) and isinstance(segment, str) and segment in current:
            current = current[segment]
        elif isinstance(current, list) and isinstance(segment, int) and 0 <= segment < len(current):
            current = current[segment]
        else:
            return default
    return current


def has_path(tree, path: Iterable[PathSegment]) -> bool:
    return resolve_path(tree, path, _MISSING) is not _MISSING


def set_path(tree, path: tuple[PathSegment, ...], value) -> None:
    """Set ``value`` at ``path``, creating intermediate objects as needed."""
    if not path:
        raise ValueError("Cannot set the root of a tree in place")
    current = tree
    for segment, following in zip(path[:-1], path[1:]):
        if isinstance(current, list):
            current = current[segment]
            continue
        if segment not in current or not isinstance(current[segment], (dict, list)):
            current[segment] = [] if isinstance(following, int) else {}
        current = current[segment]
    last = path[-1]
    if isinstance(current, list) and last == len(current):
        current.append(value)
    else:
        current[last] = value


def unset_path(tree, path: tuple[PathSegment, ...]) -> bool:
    """Remove the value at ``path``. Returns False if nothing was there."""
    if not path:
        return False
    parent = resolve_path(tree, path[:-1], _MISSING)
    last = path[-1]
    if isinstance(parent, dict) and last in parent:
        del parent[last]
        return True
    if isinstance(parent, list) and isinstance(last, int) and 0 <= last < len(parent):
        del parent[last]
        return True
    return False


def apply_entry(tree, entry: DiffEntry):
    """Apply a single entry to ``tree`` in place and return the (possibly new) root."""
    if entry.kind == DiffKind.ARRAY_CHANGE:
        array = resolve_path(tree, entry.path)
        if not isinstance(array, list):
            return tree
        if entry.item.kind == DiffKind.DELETED:
            if 0 <= entry.index < len(array):
                del array[entry.index]
        elif entry.index >= len(array):
            array.append(copy.deepcopy(entry.item.new_value))
        else:
            array[entry.index] = copy.deepcopy(entry.item.new_value)
        return tree

    if not entry.path:
        if entry.kind == DiffKind.DELETED:
            return None
        return copy.deepcopy(entry.new_value)

    if entry.kind == DiffKind.DELETED:
        unset_path(tree, entry.path)
    else:
        set_path(tree, entry.path, copy.deepcopy(entry.new_value))
    return tree


def apply_diff(tree, entries: Iterable[DiffEntry]):
    """Return a copy of ``tree`` with every entry applied in order."""
    result = copy.deepcopy(tree)
    for entry in entries:
        result = apply_entry(result, entry)
    return result
