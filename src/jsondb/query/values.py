"""Value comparison rules used by filtering, sorting and joins.

Rows come from JSON documents under a dynamic schema, so comparisons are
loose: numeric strings compare as numbers, ``None`` equals the empty value of
the other side, and booleans compare by truthiness.
"""

from __future__ import annotations

import re
from collections.abc import Sequence
from typing import Any

_NUMERIC_RE = re.compile(r"^\s*[+-]?(\d+\.?\d*|\.\d+)([eE][+-]?\d+)?\s*$")
_CHUNK_RE = re.compile(r"(\d+)")

Path = str | Sequence[str]


def to_number(value: Any) -> int | float | None:
    """Return ``value`` as a number, or None if it is not numeric."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return value
    if isinstance(value, str) and _NUMERIC_RE.match(value):
        number = float(value)
        return int(number) if number.is_integer() and "." not in value else number
    return None


def _to_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    if value is True:
        return "1"
    return str(value)


def _cmp(a: Any, b: Any) -> int:
    return (a > b) - (a < b)


def loose_equals(a: Any, b: Any) -> bool:
    """Type-coercing equality."""
    if a is None or b is None:
        other = b if a is None else a
        return other is None or other is False or other == "" or to_number(other) == 0
    if isinstance(a, bool) or isinstance(b, bool):
        return bool(a) == bool(b)
    num_a, num_b = to_number(a), to_number(b)
    if num_a is not None and num_b is not None:
        return num_a == num_b
    return _to_text(a) == _to_text(b)


def loose_compare(a: Any, b: Any) -> int:
    """Three-way comparison for the ordering operators of ``where``.

    Numbers (and numeric strings) compare numerically, everything else as
    strings.
    """
    if isinstance(a, bool) or isinstance(b, bool):
        return _cmp(bool(a), bool(b))
    if a is None and b is None:
        return 0
    if a is None:
        a = 0 if to_number(b) is not None else ""
    if b is None:
        b = 0 if to_number(a) is not None else ""
    num_a, num_b = to_number(a), to_number(b)
    if num_a is not None and num_b is not None:
        return _cmp(num_a, num_b)
    return _cmp(_to_text(a), _to_text(b))


def natural_key(text: str) -> tuple[tuple[int, int | str], ...]:
    """Split ``text`` into digit runs and text runs for natural ordering."""
    parts = []
    for chunk in _CHUNK_RE.split(text.lower()):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk))
    return tuple(parts)


def natural_compare(a: Any, b: Any) -> int:
    """Case-insensitive natural ordering, ``None`` first.

    ``"item2" < "Item10"``; real numbers compare numerically.
    """
    if a is None or b is None:
        return _cmp(a is not None, b is not None)
    num_a = to_number(a) if not isinstance(a, str) else None
    num_b = to_number(b) if not isinstance(b, str) else None
    if num_a is not None and num_b is not None:
        return _cmp(num_a, num_b)
    return _cmp(natural_key(_to_text(a)), natural_key(_to_text(b)))


def split_path(path: Path) -> list[str]:
    """Turn ``"author.name"`` or ``["author", "name"]`` into segments."""
    if isinstance(path, str):
        return path.split(".")
    return list(path)


def resolve_path(row: Any, path: Path) -> Any:
    """Walk ``path`` into nested mappings; a missing segment gives None."""
    if isinstance(path, str) and isinstance(row, dict) and path in row:
        return row[path]
    node = row
    for segment in split_path(path):
        node = node.get(segment) if isinstance(node, dict) else None
    return node
