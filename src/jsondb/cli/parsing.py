"""Input parsing utilities for CLI commands."""

import json
import re
from pathlib import Path
from typing import Any

from jsondb.core.types import Combinator

_CONDITION_RE = re.compile(
    r"^\s*(?P<field>[^\s]+)\s+(?P<op>not\s+in|in|!=|>=|<=|=|>|<)\s+(?P<value>.+?)\s*$",
    re.IGNORECASE,
)


def parse_value(text: str) -> Any:
    """Parse a literal as JSON, falling back to the raw string.

    ``30`` -> 30, ``"Ann"`` -> "Ann", ``[1, 2]`` -> [1, 2], ``Ann`` -> "Ann"
    """
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return text


def parse_field_spec(spec: str) -> tuple[str, str]:
    """Parse ``name:type`` into a (name, type) pair.

    Raises:
        ValueError: If spec format is invalid
    """
    name, sep, field_type = spec.partition(":")
    if not sep or not name or not field_type:
        raise ValueError(f"Invalid field spec: '{spec}'. Expected format: name:type")
    return name.strip(), field_type.strip()


def parse_condition(text: str) -> tuple[Combinator, str, str, Any]:
    """Parse a ``where`` condition.

    Format: ``[and|or] field op value``

    Examples:
        "age > 25"              -> (and, "age", ">", 25)
        "or name = Bo"          -> (or, "name", "=", "Bo")
        "id not in [1, 2]"      -> (and, "id", "NOT IN", [1, 2])

    Raises:
        ValueError: If the condition cannot be parsed
    """
    combinator = Combinator.AND
    head, _, rest = text.strip().partition(" ")
    if head.lower() in ("and", "or") and rest:
        combinator = Combinator(head.lower())
        text = rest

    match = _CONDITION_RE.match(text)
    if not match:
        raise ValueError(
            f"Invalid condition: '{text}'. Expected format: [and|or] field op value"
        )
    op = " ".join(match.group("op").upper().split())
    return combinator, match.group("field"), op, parse_value(match.group("value"))


def parse_order(spec: str) -> tuple[str, str]:
    """Parse ``field[:ASC|DESC]``."""
    field, _, direction = spec.partition(":")
    return field, (direction or "ASC").upper()


def read_json_file(path: str) -> Any:
    """Read a JSON document from file.

    Raises:
        FileNotFoundError: If file doesn't exist
        json.JSONDecodeError: If file contains invalid JSON
    """
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"File not found: {path}")

    with file_path.open("r") as f:
        return json.load(f)
