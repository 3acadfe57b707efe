import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
import clients
import services
from routes import games_router, creator_router, wallet_router

logging.basicConfig(
    level=config.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# --- FastAPI setup ---
app = FastAPI(title="Elimination Arena client")

# --- Middleware ---
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["POST", "GET"],
    allow_headers=["*"],
)


@app.get("/health", include_in_schema=False)
def health():
    return {"status": "ok", "chain_id": config.CHAIN_ID}


# --- Register routes ---
app.include_router(games_router, prefix="/games")
app.include_router(creator_router, prefix="/creator")
app.include_router(wallet_router, prefix="/wallet")


# --- Clients + scheduler setup ---
@app.on_event("startup")
async def startup_event():
    async def refresh_after_write():
        return await services.get_refresh_scheduler().refresh_games(force=True)

    clients.init_clients(
        known_games=lambda: services.get_refresh_scheduler().cached_games(),
        on_games_changed=refresh_after_write,
    )
    viewer = None
    guard = clients.get_network_guard()
    if guard.wallet is not None:
        viewer = await guard.current_account()
    scheduler = services.init_refresh_scheduler(
        clients.get_game_reader(), clients.get_game_writer(), viewer=viewer
    )
    scheduler.start()
    logger.info(f"Started against {config.CHAIN_NAME} ({config.CHAIN_ID}), viewer={viewer}")


@app.on_event("shutdown")
def shutdown_event():
    if services.refresh_scheduler is not None:
        services.refresh_scheduler.shutdown()
