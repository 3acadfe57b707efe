from fastapi import APIRouter, HTTPException, Depends, Query
import logging

from models import (
	CreateGameRequest,
	CreateGameResponse,
	GameListResponse,
	GameResponse,
	JoinGameRequest,
	MakeChoiceRequest,
	PlayerChoiceResponse,
	PlayerInfoResponse,
	RoundInfoResponse,
	RoundStatisticsResponse,
	TxResultResponse,
	WatchRequest,
	WatchResponse,
	WithdrawnResponse,
	WithdrawRequest,
)
from models.domain_models import PENDING_GAME_ID, active_games, featured_games
from clients import get_game_reader, get_game_writer, ArenaClientError
from services import get_refresh_scheduler
from utils.validation import is_valid_game_id
from .errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter()

VIEWS = {
	"all": lambda games: games,
	"featured": featured_games,
	"active": active_games,
}


# --- Reads ---
@router.get("", response_model=GameListResponse)
async def list_games(view: str = Query("all"), scheduler = Depends(get_refresh_scheduler)):
	if view not in VIEWS:
		raise HTTPException(status_code=400, detail=f"Unknown view {view!r}; use one of {', '.join(VIEWS)}")
	games = VIEWS[view](scheduler.cached_games())
	return GameListResponse(games=games, updated_at=scheduler.updated_at, last_error=scheduler.last_error)


@router.post("/refresh", response_model=GameListResponse)
async def refresh_games(scheduler = Depends(get_refresh_scheduler)):
	try:
		games = await scheduler.refresh_games()
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Game list refresh failed: {exc}", exc_info=True)
		raise HTTPException(status_code=502, detail=f"Refresh failed: {exc}")
	return GameListResponse(games=games, updated_at=scheduler.updated_at)


@router.get("/{game_id}", response_model=GameResponse)
async def get_game(game_id: str, scheduler = Depends(get_refresh_scheduler), reader = Depends(get_game_reader)):
	cached = scheduler.cached_game(game_id)
	if cached is not None:
		return cached
	try:
		return await reader.get_game(game_id, viewer=scheduler.viewer)
	except ArenaClientError as exc:
		return error_response(exc)


@router.get("/{game_id}/players/{address}", response_model=PlayerInfoResponse)
async def get_player_info(game_id: str, address: str, reader = Depends(get_game_reader)):
	try:
		return await reader.get_player_info(game_id, address)
	except ArenaClientError as exc:
		return error_response(exc)
	except ValueError as exc:
		raise HTTPException(status_code=400, detail=str(exc))


@router.get("/{game_id}/rounds/{round_number}", response_model=RoundInfoResponse)
async def get_round_info(game_id: str, round_number: int, reader = Depends(get_game_reader)):
	try:
		return await reader.get_round_info(game_id, round_number)
	except ArenaClientError as exc:
		return error_response(exc)


@router.get("/{game_id}/rounds/{round_number}/statistics", response_model=RoundStatisticsResponse)
async def get_round_statistics(game_id: str, round_number: int, reader = Depends(get_game_reader)):
	try:
		return await reader.get_round_statistics(game_id, round_number)
	except ArenaClientError as exc:
		return error_response(exc)


@router.get("/{game_id}/rounds/{round_number}/choices", response_model=list[PlayerChoiceResponse])
async def get_player_choices(game_id: str, round_number: int, scheduler = Depends(get_refresh_scheduler), reader = Depends(get_game_reader)):
	# player records only describe the current round
	try:
		game = scheduler.cached_game(game_id) or await reader.get_game(game_id)
		if int(game["current_round"]) != round_number:
			raise HTTPException(status_code=409, detail=f"Game {game_id} is in round {game['current_round']}, not {round_number}")
		return await reader.get_all_player_choices(game_id, game["player_list"])
	except ArenaClientError as exc:
		return error_response(exc)


@router.get("/{game_id}/withdrawn", response_model=WithdrawnResponse)
async def get_winnings_withdrawn(game_id: str, reader = Depends(get_game_reader)):
	try:
		withdrawn = await reader.get_winnings_withdrawn(game_id)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Withdrawal flag read failed for game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=502, detail=f"Failed to read withdrawal state: {exc}")
	return WithdrawnResponse(game_id=game_id, withdrawn=withdrawn)


# --- Watches ---
@router.post("/{game_id}/watch", response_model=WatchResponse, status_code=201)
async def watch_game(game_id: str, req: WatchRequest | None = None, scheduler = Depends(get_refresh_scheduler)):
	if not is_valid_game_id(game_id):
		raise HTTPException(status_code=400, detail=f"Invalid game id: {game_id!r}")
	req = req or WatchRequest()
	watch = scheduler.watch(game_id, viewer=req.viewer, auto_advance=req.auto_advance)
	return watch.snapshot()


@router.get("/watches/{job_id}", response_model=WatchResponse)
async def get_watch(job_id: str, scheduler = Depends(get_refresh_scheduler)):
	watch = scheduler.find_watch(job_id)
	if watch is None:
		raise HTTPException(status_code=404, detail=f"No watch {job_id}")
	return watch.snapshot()


@router.delete("/watches/{job_id}", status_code=204)
async def stop_watch(job_id: str, scheduler = Depends(get_refresh_scheduler)):
	watch = scheduler.find_watch(job_id)
	if watch is None:
		raise HTTPException(status_code=404, detail=f"No watch {job_id}")
	watch.close()


# --- Writes ---
@router.post("", response_model=CreateGameResponse, status_code=201)
async def create_game(req: CreateGameRequest, writer = Depends(get_game_writer)):
	try:
		game_id = await writer.create_game(req.currency, req.entry_fee, req.max_players, req.name)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error creating game: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return CreateGameResponse(game_id=game_id, pending=game_id == PENDING_GAME_ID)


@router.post("/{game_id}/join", response_model=TxResultResponse)
async def join_game(game_id: str, req: JoinGameRequest | None = None, writer = Depends(get_game_writer)):
	entry_fee = req.entry_fee if req else None
	try:
		await writer.join_game(game_id, entry_fee)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error joining game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse(game_id=game_id)


@router.post("/{game_id}/choice", response_model=TxResultResponse)
async def make_choice(game_id: str, req: MakeChoiceRequest, writer = Depends(get_game_writer)):
	try:
		await writer.make_choice(game_id, req.choice)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error submitting choice for game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse(game_id=game_id)


@router.post("/{game_id}/start", response_model=TxResultResponse)
async def start_game(game_id: str, writer = Depends(get_game_writer)):
	try:
		await writer.start_game_after_countdown(game_id)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Failed to start game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse(game_id=game_id)


@router.post("/{game_id}/withdraw", response_model=TxResultResponse)
async def withdraw_winnings(game_id: str, req: WithdrawRequest | None = None, writer = Depends(get_game_writer)):
	leave_in_yield = req.leave_in_yield if req else False
	try:
		await writer.withdraw_winnings(game_id, leave_in_yield)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error withdrawing from game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse(game_id=game_id)


@router.post("/{game_id}/timeout", response_model=TxResultResponse)
async def process_round_timeout(game_id: str, writer = Depends(get_game_writer)):
	try:
		await writer.process_round_timeout(game_id)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error processing timeout for game {game_id}: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse(game_id=game_id)
