"""HTTP route modules (FastAPI routers) for the application.

This file explicitly exports the router objects provided by each
submodule so callers can do:

	from routes import games_router
	app.include_router(games_router, prefix="/games")

Submodules should expose an `APIRouter` named `router`.
"""

from .games import router as games_router
from .creator import router as creator_router
from .wallet import router as wallet_router

__all__ = [
	"games_router",
	"creator_router",
	"wallet_router",
]
