from fastapi import APIRouter, HTTPException, Depends
import logging

from models import CreatorStakeResponse, StakeRequest, TxResultResponse
from models.domain_models import unstake_allowed
from clients import get_game_reader, get_game_writer, ArenaClientError, UnstakeLocked
from utils.validation import is_address
from .errors import error_response

logger = logging.getLogger(__name__)

router = APIRouter()


def _stake_response(stake) -> CreatorStakeResponse:
	return CreatorStakeResponse(**stake, unstake_allowed=unstake_allowed(stake))


@router.get("/stake/{address}", response_model=CreatorStakeResponse)
async def get_creator_stake(address: str, reader = Depends(get_game_reader)):
	if not is_address(address):
		raise HTTPException(status_code=400, detail=f"Invalid address {address!r}")
	stake = await reader.get_creator_stake(address)
	if stake is None:
		raise HTTPException(status_code=404, detail=f"No stake information for {address}")
	return _stake_response(stake)


@router.post("/stake", response_model=TxResultResponse)
async def stake_as_creator(req: StakeRequest, writer = Depends(get_game_writer)):
	try:
		await writer.stake_as_creator(req.amount)
	except ArenaClientError as exc:
		return error_response(exc)
	except Exception as exc:
		logger.error(f"Unexpected error staking: {exc}", exc_info=True)
		raise HTTPException(status_code=500, detail=f"Server error: {str(exc)}")
	return TxResultResponse()


@router.post("/unstake", response_model=TxResultResponse)
async def unstake_creator(writer = Depends(get_game_writer)):
	try:
		stake = await writer.get_creator_stake()
		if stake is None:
			raise HTTPException(status_code=502, detail="Could not read creator stake; try again")
		if not stake.get("has_staked"):
			raise HTTPException(status_code=400, detail="No creator stake to withdraw")
		# active games lock the stake; unstaking now would be penalized on-chain
		if not unstake_allowed(stake):
			raise UnstakeLocked(stake.get("active_games_count", 0))
		await writer.unstake_creator()
	except ArenaClientError as exc:
		return error_response(exc)
	return TxResultResponse()
