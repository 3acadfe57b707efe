"""Pydantic request/response models for the FastAPI endpoints.

Keep transport concerns (validation, docs) here and keep business/domain
types in `models.domain_models`. Amounts travel as decimal strings.
"""
from __future__ import annotations

from decimal import Decimal

from pydantic import BaseModel, Field

from .domain_models import Choice, Currency, GameMode, GameStatus


# --- Requests ---
class CreateGameRequest(BaseModel):
	currency: Currency = Currency.NATIVE
	entry_fee: Decimal
	max_players: int
	name: str | None = None


class JoinGameRequest(BaseModel):
	# defaults to the game's own entry fee
	entry_fee: Decimal | None = None


class MakeChoiceRequest(BaseModel):
	choice: Choice


class WithdrawRequest(BaseModel):
	leave_in_yield: bool = False


class StakeRequest(BaseModel):
	amount: Decimal


class WatchRequest(BaseModel):
	viewer: str | None = None
	# start the game from this watch once its countdown elapses
	auto_advance: bool = False


# --- Responses ---
class GameResponse(BaseModel):
	game_id: str
	name: str
	mode: GameMode
	status: GameStatus
	currency: Currency
	currency_address: str = ""
	entry_fee: str
	total_prize_pool: str
	yield_accumulated: str
	yield_protocol: int = 0
	yield_distributed: bool = False
	max_players: int
	min_players: int
	player_count: int
	current_player_count: int
	current_round: int
	start_time: int = 0
	countdown_deadline: int | None = None
	creator: str = ""
	winner: str | None = None
	player_list: list[str] = Field(default_factory=list)
	can_join: bool
	is_player: bool = False
	is_creator: bool = False


class GameListResponse(BaseModel):
	games: list[GameResponse]
	updated_at: float | None = None
	last_error: str | None = None


class CreateGameResponse(BaseModel):
	game_id: str
	pending: bool = False


class TxResultResponse(BaseModel):
	ok: bool = True
	game_id: str | None = None


class PlayerInfoResponse(BaseModel):
	game_id: str
	address: str
	is_playing: bool
	has_made_choice: bool
	choice: Choice | None = None
	eliminated: bool
	round_eliminated: int | None = None
	entry_amount: str


class RoundInfoResponse(BaseModel):
	game_id: str
	round_number: int
	deadline: int
	processed: bool
	winning_choice: Choice | None = None
	block_timestamp: int | None = None


class RoundStatisticsResponse(BaseModel):
	game_id: str
	round_number: int
	head_count: int
	tail_count: int
	total_choices: int


class PlayerChoiceResponse(BaseModel):
	address: str
	has_made_choice: bool
	choice: Choice | None = None
	eliminated: bool
	round_eliminated: int | None = None


class WithdrawnResponse(BaseModel):
	game_id: str
	withdrawn: bool


class WatchResponse(BaseModel):
	job_id: str
	game_id: str
	auto_advance: bool = False
	game: GameResponse | None = None
	round: RoundInfoResponse | None = None
	player: PlayerInfoResponse | None = None
	updated_at: float | None = None
	last_error: str | None = None


class CreatorStakeResponse(BaseModel):
	address: str
	staked_amount: str
	yield_accumulated: str
	timestamp: int
	active_games_count: int
	has_staked: bool
	unstake_allowed: bool


class BalanceResponse(BaseModel):
	currency: Currency
	symbol: str
	balance: str


class NetworkResponse(BaseModel):
	chain_id: int
	chain_name: str
	account: str


class ErrorResponse(BaseModel):
	error: str
	message: str


__all__ = [
	"CreateGameRequest",
	"JoinGameRequest",
	"MakeChoiceRequest",
	"WithdrawRequest",
	"StakeRequest",
	"WatchRequest",
	"GameResponse",
	"GameListResponse",
	"CreateGameResponse",
	"TxResultResponse",
	"PlayerInfoResponse",
	"RoundInfoResponse",
	"RoundStatisticsResponse",
	"PlayerChoiceResponse",
	"WithdrawnResponse",
	"WatchResponse",
	"CreatorStakeResponse",
	"BalanceResponse",
	"NetworkResponse",
	"ErrorResponse",
]
