"""Batched, failure-isolated reads of game state from the GameManager contract.

Reads go straight to the configured RPC endpoint; they never need the wallet
and never pass through the network guard.
"""
import asyncio
import logging
import time
from typing import Any, Callable, Iterable, Optional

from models.domain_models import (
    Choice,
    Currency,
    GameMode,
    GameRecord,
    GameStatus,
    MIN_PLAYERS,
    PlayerChoice,
    PlayerInfo,
    RoundInfo,
    CreatorStakeInfo,
    can_join,
)
from infrastructure.address_book import ChainAddressBook, GAME_MANAGER
from utils.units import format_units
from utils.validation import is_valid_game_id
from .decoding import (
    CREATOR_STAKE,
    GAME_STRUCT,
    GAME_VIEW,
    PLAYER_INFO,
    ROUND_INFO,
    STATS,
    decode_address_list,
    is_zero_address,
    normalize_address,
)
from .exceptions import (
    DecodeError,
    GameNotFound,
    InvalidGameId,
    PlayerNotFound,
    RoundNotFound,
)

logger = logging.getLogger(__name__)


class GameReadClient:
    """
    Reads and normalizes game, player, round and stake records.

    Invariants:
    - list_games() is sorted by game id, newest first, once all fetches resolve
    - a failing id is dropped from list_games(), never fails the batch
    - current_player_count == len(player_list) <= max_players
    - countdown_deadline is recomputed from the remaining seconds on every read
    """

    def __init__(
        self,
        address_book: ChainAddressBook,
        w3: Any,
        *,
        batch_size: int = 20,
        batch_count: int = 5,
        clock: Callable[[], float] = time.time,
    ):
        self.address_book = address_book
        self.w3 = w3
        self.batch_size = batch_size
        self.batch_count = batch_count
        self._clock = clock
        self._contract = None

    @property
    def contract(self):
        if self._contract is None:
            self._contract = self.w3.eth.contract(
                address=self.address_book.game_manager,
                abi=self.address_book.abi_for(GAME_MANAGER),
            )
        return self._contract

    # -------------------------------------------------
    # Game list
    # -------------------------------------------------

    async def total_games(self) -> int:
        raw = await self.contract.functions.stats().call()
        return int(STATS.field(raw, "total_games"))

    def game_window(self, total: int) -> range:
        """Ids covered by one listing: the most recent batch_size * batch_count games."""
        if total <= 0:
            return range(0)
        start = max(0, total - self.batch_size * self.batch_count)
        return range(start, total)

    async def list_games(self, viewer: Optional[str] = None) -> list[GameRecord]:
        total = await self.total_games()
        window = self.game_window(total)
        if not window:
            return []

        logger.debug(f"[READ] Fetching games {window.start}..{window.stop - 1} of {total}")
        results = await asyncio.gather(
            *(self._fetch_game(game_id, viewer) for game_id in window),
            return_exceptions=True,
        )

        games: list[GameRecord] = []
        for game_id, result in zip(window, results):
            if isinstance(result, asyncio.CancelledError):
                raise result
            if isinstance(result, BaseException):
                logger.warning(f"[READ] Dropping game {game_id}: {result.__class__.__name__}: {result}")
                continue
            games.append(result)

        games.sort(key=lambda g: int(g["game_id"]), reverse=True)
        logger.info(f"[READ] Listed {len(games)} game(s) from window of {len(window)}")
        return games

    async def get_game(self, game_id, viewer: Optional[str] = None) -> GameRecord:
        game_id = self._game_id(game_id)
        try:
            return await self._fetch_game(game_id, viewer)
        except GameNotFound:
            raise
        except Exception as exc:
            logger.info(f"[READ] Game {game_id} not readable: {exc}")
            raise GameNotFound(f"Game {game_id} not found") from exc

    async def _fetch_game(self, game_id: int, viewer: Optional[str]) -> GameRecord:
        functions = self.contract.functions
        raw = await functions.getGame(game_id).call()

        returned_id = int(GAME_VIEW.field(raw, "game_id", game_id))
        if returned_id != game_id:
            raise GameNotFound(f"Game id mismatch: asked for {game_id}, contract returned {returned_id}")

        view = GAME_VIEW.decode(
            raw, "mode", "status", "currency", "entry_fee", "max_players", "current_round",
            "winner", "total_prize_pool", "yield_accumulated", "player_count",
        )
        name = GAME_VIEW.field(raw, "name", "") or ""
        status = GameStatus(int(view["status"]))
        currency = Currency(int(view["currency"]))
        info = self.address_book.currency_info(currency)
        max_players = int(view["max_players"])

        player_list, players_ok = await self._players(game_id, max_players)
        struct = await self._struct(game_id)

        record: GameRecord = {
            "game_id": str(game_id),
            "name": name.strip() or f"Game #{game_id}",
            "mode": GameMode(int(view["mode"])),
            "status": status,
            "currency": currency,
            "currency_address": self.address_book.token_address(currency) or "",
            "entry_fee": format_units(view["entry_fee"], info.decimals),
            "total_prize_pool": format_units(view["total_prize_pool"], info.decimals),
            "yield_accumulated": format_units(view["yield_accumulated"], info.decimals),
            "max_players": max_players,
            "min_players": int(struct.get("min_players") or MIN_PLAYERS),
            "player_count": int(view["player_count"]),
            "current_player_count": len(player_list),
            "current_round": int(view["current_round"]),
            "start_time": int(struct.get("start_time") or 0),
            "countdown_deadline": None,
            "creator": struct.get("creator") or "",
            "winner": None,
            "player_list": player_list,
            "yield_protocol": int(struct.get("yield_protocol") or 0),
            "yield_distributed": bool(struct.get("yield_distributed", False)),
        }
        if status == GameStatus.COMPLETED and not is_zero_address(view["winner"]):
            record["winner"] = normalize_address(view["winner"])
        if status == GameStatus.COUNTDOWN:
            record["countdown_deadline"] = await self._countdown_deadline(game_id)

        record["can_join"] = can_join(status)
        record["is_creator"] = bool(viewer) and record["creator"].lower() == viewer.lower()
        record["is_player"] = await self._is_player(game_id, viewer, player_list, players_ok)
        return record

    async def _players(self, game_id: int, max_players: int) -> tuple[list[str], bool]:
        try:
            raw = await self.contract.functions.getGamePlayers(game_id).call()
        except Exception as exc:
            logger.warning(f"[READ] Player list for game {game_id} unavailable: {exc}")
            return [], False
        players = decode_address_list(raw)
        if len(players) > max_players:
            logger.warning(
                f"[READ] Game {game_id} reports {len(players)} players for {max_players} seats; truncating"
            )
            players = players[:max_players]
        return players, True

    async def _struct(self, game_id: int) -> dict:
        """Creator, start time and yield fields from the public games() mapping; {} if unreadable."""
        try:
            raw = await self.contract.functions.games(game_id).call()
        except Exception as exc:
            logger.warning(f"[READ] games({game_id}) unavailable: {exc}")
            return {}
        struct = {key: GAME_STRUCT.field(raw, key, None) for key in GAME_STRUCT.fields}
        creator = struct.get("creator")
        struct["creator"] = "" if is_zero_address(creator) else normalize_address(creator)
        return struct

    async def _countdown_deadline(self, game_id: int) -> Optional[int]:
        try:
            remaining = await self.contract.functions.getCountdownTimeRemaining(game_id).call()
        except Exception as exc:
            logger.warning(f"[READ] Countdown for game {game_id} unavailable: {exc}")
            return None
        return int(self._clock()) + int(remaining)

    async def _is_player(self, game_id: int, viewer: Optional[str], player_list: list[str], players_ok: bool) -> bool:
        if not viewer:
            return False
        if players_ok:
            return viewer.lower() in {p.lower() for p in player_list}
        try:
            raw = await self.contract.functions.getPlayerInfo(game_id, normalize_address(viewer)).call()
        except Exception:
            return False
        return bool(PLAYER_INFO.field(raw, "is_playing", False))

    # -------------------------------------------------
    # Player / round lookups
    # -------------------------------------------------

    async def get_player_info(self, game_id, address: str, currency: Optional[Currency] = None) -> PlayerInfo:
        game_id = self._game_id(game_id)
        address = normalize_address(address)
        try:
            raw = await self.contract.functions.getPlayerInfo(game_id, address).call()
            fields = PLAYER_INFO.decode(raw)
        except DecodeError:
            raise
        except Exception as exc:
            raise PlayerNotFound(f"No player record for {address} in game {game_id}") from exc

        if currency is None:
            currency = (await self.get_game(game_id))["currency"]
        decimals = self.address_book.currency_info(currency).decimals

        if not fields["is_playing"] and not fields["eliminated"] and not int(fields["entry_amount"]):
            raise PlayerNotFound(f"{address} has not joined game {game_id}")

        has_made_choice = bool(fields["has_made_choice"])
        eliminated = bool(fields["eliminated"])
        return {
            "game_id": str(game_id),
            "address": address,
            "is_playing": bool(fields["is_playing"]),
            "has_made_choice": has_made_choice,
            "choice": Choice(int(fields["choice"])) if has_made_choice else None,
            "eliminated": eliminated,
            "round_eliminated": int(fields["round_eliminated"]) if eliminated else None,
            "entry_amount": format_units(fields["entry_amount"], decimals),
        }

    async def get_round_info(self, game_id, round_number: int) -> RoundInfo:
        game_id = self._game_id(game_id)
        fields = await self._round(game_id, round_number)
        processed = bool(fields["processed"])
        return {
            "game_id": str(game_id),
            "round_number": int(round_number),
            "deadline": int(fields["deadline"]),
            "processed": processed,
            "winning_choice": Choice(int(fields["winning_choice"])) if processed else None,
            "block_timestamp": await self.latest_block_timestamp(),
        }

    async def get_round_statistics(self, game_id, round_number: int) -> dict:
        game_id = self._game_id(game_id)
        fields = await self._round(game_id, round_number)
        heads = int(fields["head_count"])
        tails = int(fields["tail_count"])
        return {
            "game_id": str(game_id),
            "round_number": int(round_number),
            "head_count": heads,
            "tail_count": tails,
            "total_choices": heads + tails,
        }

    async def _round(self, game_id: int, round_number: int) -> dict:
        try:
            raw = await self.contract.functions.rounds(game_id, int(round_number)).call()
        except Exception as exc:
            raise RoundNotFound(f"Round {round_number} of game {game_id} not found") from exc
        fields = ROUND_INFO.decode(raw, "deadline", "processed", "winning_choice")
        fields["head_count"] = ROUND_INFO.field(raw, "head_count", 0)
        fields["tail_count"] = ROUND_INFO.field(raw, "tail_count", 0)
        if not int(fields["deadline"]) and not fields["processed"]:
            raise RoundNotFound(f"Round {round_number} of game {game_id} has not started")
        return fields

    async def get_all_player_choices(self, game_id, players: Iterable[str]) -> list[PlayerChoice]:
        """Choice state for each address; addresses whose lookup fails are skipped."""
        game_id = self._game_id(game_id)
        players = list(players)

        async def one(address: str) -> PlayerChoice:
            raw = await self.contract.functions.getPlayerInfo(game_id, normalize_address(address)).call()
            fields = PLAYER_INFO.decode(raw)
            made = bool(fields["has_made_choice"])
            eliminated = bool(fields["eliminated"])
            return {
                "address": normalize_address(address),
                "has_made_choice": made,
                "choice": Choice(int(fields["choice"])) if made else None,
                "eliminated": eliminated,
                "round_eliminated": int(fields["round_eliminated"]) if eliminated else None,
            }

        results = await asyncio.gather(*(one(p) for p in players), return_exceptions=True)
        choices: list[PlayerChoice] = []
        for address, result in zip(players, results):
            if isinstance(result, BaseException):
                logger.warning(f"[READ] Choice lookup for {address} in game {game_id} failed: {result}")
                continue
            choices.append(result)
        return choices

    async def latest_block_timestamp(self) -> Optional[int]:
        try:
            block = await self.w3.eth.get_block("latest")
        except Exception as exc:
            logger.warning(f"[READ] Latest block unavailable: {exc}")
            return None
        return int(block["timestamp"])

    # -------------------------------------------------
    # Misc reads
    # -------------------------------------------------

    async def get_winnings_withdrawn(self, game_id) -> bool:
        game_id = self._game_id(game_id)
        return bool(await self.contract.functions.winningsWithdrawn(game_id).call())

    async def is_paused(self) -> bool:
        return bool(await self.contract.functions.paused().call())

    async def get_creator_stake(self, address: str) -> Optional[CreatorStakeInfo]:
        """Stake record for `address`, or None when it cannot be read."""
        try:
            raw = await self.contract.functions.getCreatorStake(normalize_address(address)).call()
            fields = CREATOR_STAKE.decode(raw)
        except Exception as exc:
            logger.warning(f"[READ] Creator stake for {address} unavailable: {exc}")
            return None
        decimals = self.address_book.currency_info(Currency.STABLE_YIELD).decimals
        return {
            "address": normalize_address(address),
            "staked_amount": format_units(fields["staked_amount"], decimals),
            "yield_accumulated": format_units(fields["yield_accumulated"], decimals),
            "timestamp": int(fields["timestamp"]),
            "active_games_count": int(fields["active_games_count"]),
            "has_staked": bool(fields["has_staked"]),
        }

    @staticmethod
    def _game_id(game_id) -> int:
        if not is_valid_game_id(game_id):
            raise InvalidGameId(f"Invalid game id: {game_id!r}")
        return int(game_id)
