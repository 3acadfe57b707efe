"""Time utilities: unix-second helpers used for countdown and round deadlines.

Chain timestamps are unix seconds; keep conversions here so callers never mix
datetimes and raw seconds.
"""
from typing import Optional
import time


def now_unix() -> int:
	"""Return the current wall-clock time as whole unix seconds."""
	return int(time.time())


def seconds_until(deadline: Optional[int], now: Optional[float] = None) -> Optional[int]:
	"""Seconds left before `deadline`, clamped at 0. None when no deadline is set."""
	if not deadline:
		return None
	if now is None:
		now = now_unix()
	return max(0, int(deadline) - int(now))
