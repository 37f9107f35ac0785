"""Schema validation for JSONDb."""

from jsondb.schema.validator import Validator, normalize_schema, value_matches

__all__ = [
    "Validator",
    "normalize_schema",
    "value_matches",
]
