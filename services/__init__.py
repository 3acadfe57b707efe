"""Services package: long-running background services used by the app.

Import submodules to make them available as `services.refresh_scheduler`.
"""

from .refresh_scheduler import RefreshScheduler, GameWatch

__all__ = [
	"RefreshScheduler",
	"GameWatch",
]


# Runtime singleton and initialization helpers
from typing import Optional
import config

refresh_scheduler: Optional[RefreshScheduler] = None


def init_refresh_scheduler(reader, writer=None, viewer: Optional[str] = None) -> RefreshScheduler:
	"""Create the process-wide scheduler. Idempotent; start() is left to the caller."""
	global refresh_scheduler
	if refresh_scheduler is None:
		refresh_scheduler = RefreshScheduler(
			reader,
			writer=writer,
			list_interval=config.GAME_LIST_POLL_SECONDS,
			watch_interval=config.WATCH_POLL_SECONDS,
			viewer=viewer,
		)
	return refresh_scheduler


def get_refresh_scheduler() -> RefreshScheduler:
	if refresh_scheduler is None:
		raise RuntimeError("Refresh scheduler not initialized")
	return refresh_scheduler
