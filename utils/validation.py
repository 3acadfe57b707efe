"""Validation helpers for user-supplied values.

Game names end up on-chain in a string argument, so they are checked locally
before any wallet prompt.
"""
import regex as re


# Allow: any Unicode letter/mark/number, spaces, plus a small, explicit set of name punctuation
VALID_NAME_RE = re.compile(r"^[\p{L}\p{M}\p{N} .'\-`’·#!]+$", flags=re.UNICODE)

MAX_NAME_LENGTH = 64

# 0x-prefixed, 20 bytes of hex
ADDRESS_RE = re.compile(r"^0x[0-9a-fA-F]{40}$")


def is_valid_name(s: str) -> bool:
	"""Return True if `s` is a reasonable game name.

	- Strips and enforces a sensible maximum length.
	- Uses Unicode-aware character class matching.
	"""
	if not s or s.isspace():
		return False
	s = s.strip()
	if len(s) > MAX_NAME_LENGTH:
		return False
	return bool(VALID_NAME_RE.match(s))


def is_address(s: str) -> bool:
	return bool(s) and bool(ADDRESS_RE.match(s))


def is_valid_game_id(s) -> bool:
	"""Game ids are non-negative integers, possibly passed around as strings."""
	if isinstance(s, bool):
		return False
	if isinstance(s, int):
		return s >= 0
	if not isinstance(s, str):
		return False
	s = s.strip()
	return s.isdigit()
