"""Domain-level typed models used by the clients and the refresh scheduler.

Enums mirror the contract's uint8 encodings. Records are `TypedDict`s so they
map directly onto the JSON handed to UI callers; derived flags (`can_join`,
`is_player`, `is_creator`) are computed client-side and never read from chain.
"""
from __future__ import annotations

from decimal import Decimal
from enum import IntEnum
from typing import TypedDict


class Currency(IntEnum):
	NATIVE = 0
	STABLE_YIELD = 1
	STAKED_ASSET = 2


class GameMode(IntEnum):
	QUICK_PLAY = 0
	SCHEDULED = 1
	PRIVATE = 2


class GameStatus(IntEnum):
	WAITING = 0
	IN_PROGRESS = 1
	COMPLETED = 2
	CANCELLED = 3
	COUNTDOWN = 4  # enough players to start, still accepting more until the deadline


class Choice(IntEnum):
	HEAD = 0
	TAIL = 1


JOINABLE_STATUSES = frozenset({GameStatus.WAITING, GameStatus.COUNTDOWN})

# Contract-side bounds, mirrored locally so bad input fails before any network call
MIN_ENTRY_FEE = Decimal("0.001")
MAX_ENTRY_FEE = Decimal("100")
MIN_PLAYERS = 4
MAX_PLAYERS = 20
MIN_CREATOR_STAKE = Decimal("30")

# Returned by create_game when the transaction confirmed but no GameCreated log
# could be decoded; callers reconcile through the next list refresh.
PENDING_GAME_ID = "pending"


class GameRecord(TypedDict, total=False):
	game_id: str
	name: str
	mode: GameMode
	status: GameStatus
	currency: Currency
	currency_address: str
	entry_fee: str
	total_prize_pool: str
	yield_accumulated: str
	yield_protocol: int
	yield_distributed: bool
	max_players: int
	min_players: int
	player_count: int
	current_player_count: int
	current_round: int
	start_time: int
	countdown_deadline: int | None
	creator: str
	winner: str | None
	player_list: list[str]
	can_join: bool
	is_player: bool
	is_creator: bool


class PlayerInfo(TypedDict, total=False):
	game_id: str
	address: str
	is_playing: bool
	has_made_choice: bool
	choice: Choice | None
	eliminated: bool
	round_eliminated: int | None
	entry_amount: str


class RoundInfo(TypedDict, total=False):
	game_id: str
	round_number: int
	deadline: int
	processed: bool
	winning_choice: Choice | None
	block_timestamp: int | None


class PlayerChoice(TypedDict, total=False):
	address: str
	choice: Choice | None
	has_made_choice: bool
	eliminated: bool
	round_eliminated: int | None


class CreatorStakeInfo(TypedDict, total=False):
	address: str
	staked_amount: str
	yield_accumulated: str
	timestamp: int
	active_games_count: int
	has_staked: bool


def can_join(status: GameStatus) -> bool:
	return status in JOINABLE_STATUSES


def unstake_allowed(stake: CreatorStakeInfo | None) -> bool:
	"""True when the creator holds a stake and no game they created is still active.

	Active games lock the stake; unstaking early costs a penalty on-chain, so
	callers gate the unstake action on this.
	"""
	if not stake or not stake.get("has_staked"):
		return False
	return stake.get("active_games_count", 0) == 0


def featured_games(games: list[GameRecord]) -> list[GameRecord]:
	"""Games in progress, or in countdown with a full minimum roster."""
	return [
		g for g in games
		if g.get("status") == GameStatus.IN_PROGRESS
		or (
			g.get("status") == GameStatus.COUNTDOWN
			and g.get("current_player_count", 0) >= g.get("min_players", MIN_PLAYERS)
		)
	]


def active_games(games: list[GameRecord]) -> list[GameRecord]:
	return [
		g for g in games
		if g.get("status") in (GameStatus.WAITING, GameStatus.COUNTDOWN, GameStatus.IN_PROGRESS)
	]


__all__ = [
	"Currency",
	"GameMode",
	"GameStatus",
	"Choice",
	"JOINABLE_STATUSES",
	"MIN_ENTRY_FEE",
	"MAX_ENTRY_FEE",
	"MIN_PLAYERS",
	"MAX_PLAYERS",
	"MIN_CREATOR_STAKE",
	"PENDING_GAME_ID",
	"GameRecord",
	"PlayerInfo",
	"RoundInfo",
	"PlayerChoice",
	"CreatorStakeInfo",
	"can_join",
	"unstake_allowed",
	"featured_games",
	"active_games",
]
