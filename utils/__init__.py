"""Utility helpers used across the project.

Make commonly used helpers available at the package level for convenience.

Exports:
- unit helpers: `parse_units`, `format_units`, `to_decimal`, `MAX_UINT256`
- time helpers: `now_unix`, `seconds_until`
- validation helpers: `is_valid_name`, `is_address`, `is_valid_game_id`, `VALID_NAME_RE`
"""

from .units import parse_units, format_units, to_decimal, MAX_UINT256
from .time import now_unix, seconds_until
from .validation import is_valid_name, is_address, is_valid_game_id, VALID_NAME_RE

__all__ = [
	"parse_units",
	"format_units",
	"to_decimal",
	"MAX_UINT256",
	"now_unix",
	"seconds_until",
	"is_valid_name",
	"is_address",
	"is_valid_game_id",
	"VALID_NAME_RE",
]
