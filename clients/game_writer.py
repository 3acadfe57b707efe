"""State-changing calls against the GameManager contract.

Every write goes through the network guard first and ends in a confirmed
receipt or a classified ArenaClientError.
"""
import logging
from decimal import Decimal
from typing import Awaitable, Callable, Iterable, Optional

from models.domain_models import (
    Choice,
    Currency,
    CreatorStakeInfo,
    GameRecord,
    GameStatus,
    MAX_PLAYERS,
    MIN_CREATOR_STAKE,
    MIN_ENTRY_FEE,
    MIN_PLAYERS,
    PENDING_GAME_ID,
)
from infrastructure.address_book import ChainAddressBook, GAME_MANAGER
from infrastructure.wallet import ActiveConnection
from utils.units import format_units, parse_units, to_decimal
from utils.validation import MAX_NAME_LENGTH, is_valid_game_id, is_valid_name
from .network_guard import NetworkGuard
from .transactions import DEFAULT_TX_TIMEOUT, find_event, submit_call
from .exceptions import (
    ArenaClientError,
    ChoiceAlreadyMade,
    ContractPaused,
    GameNotInCountdown,
    GameNotInProgress,
    InsufficientBalance,
    InvalidEntryFee,
    InvalidGameId,
    InvalidGameName,
    InvalidPlayerCount,
    InvalidStakeAmount,
    LookupFailed,
    NotAPlayer,
    PlayerEliminated,
    PlayerNotFound,
    RoundExpired,
    UserRejected,
    ValidationError,
)
from .game_reader import GameReadClient
from .token_ledger import TokenLedgerClient

logger = logging.getLogger(__name__)

DEFAULT_GAME_NAME = "Quick Play Game"

CREATE_ENTRY_POINTS = {
    Currency.NATIVE: "createQuickPlayGame",
    Currency.STABLE_YIELD: "createQuickPlayGameUSDT0",
    Currency.STAKED_ASSET: "createQuickPlayGameMETH",
}

WITHDRAW_GAS_LIMIT = 500_000


class GameWriteClient:
    """
    Submits create/join/choose/stake/advance calls.

    Invariants:
    - local validation runs before any wallet interaction
    - approval is confirmed before the dependent call is submitted
    - a choice recorded for (game, player, round) is never submitted twice
    """

    def __init__(
        self,
        guard: NetworkGuard,
        ledger: TokenLedgerClient,
        reader: GameReadClient,
        address_book: ChainAddressBook,
        *,
        known_games: Optional[Callable[[], Iterable[GameRecord]]] = None,
        on_games_changed: Optional[Callable[[], Awaitable[object]]] = None,
        tx_timeout: float = DEFAULT_TX_TIMEOUT,
    ):
        self.guard = guard
        self.ledger = ledger
        self.reader = reader
        self.address_book = address_book
        self.known_games = known_games
        self.on_games_changed = on_games_changed
        self.tx_timeout = tx_timeout
        self._choices_made: set[tuple[int, str, int]] = set()

    # -------------------------------------------------
    # Games
    # -------------------------------------------------

    async def create_game(self, currency, entry_fee, max_players: int, name: Optional[str] = None) -> str:
        """Create a quick-play game. Returns the new game id, or PENDING_GAME_ID
        when the transaction confirmed but no GameCreated log could be decoded."""
        currency = Currency(currency)
        info = self.address_book.currency_info(currency)
        fee = self._validate_entry_fee(currency, entry_fee)
        units = self._to_units(fee, info.decimals, InvalidEntryFee)
        self._validate_player_count(max_players)
        game_name = self._validate_name(name)

        conn = await self.guard.ensure_network()
        if self.address_book.token_address(currency) is not None:
            await self.ledger.ensure_approval(currency, fee, conn)
        await self._require_balance(conn, currency, units)

        contract = self._contract(conn)
        call = getattr(contract.functions, CREATE_ENTRY_POINTS[currency])(game_name, units, int(max_players))
        value = units if currency is Currency.NATIVE else 0
        logger.info(
            f"[WRITE] Creating '{game_name}' ({fee} {info.symbol}, {max_players} players) as {conn.account}"
        )
        receipt = await submit_call(conn, call, value=value, timeout=self.tx_timeout, description="create game")

        event = find_event(contract, receipt, "GameCreated")
        if event is None:
            logger.warning("[WRITE] GameCreated not found in receipt; game id pending until next refresh")
            game_id = PENDING_GAME_ID
        else:
            game_id = str(event["args"]["gameId"])
            logger.info(f"[WRITE] Game {game_id} created")
        await self._games_changed()
        return game_id

    async def join_game(self, game_id, entry_fee=None) -> bool:
        """Join a game, approving the token first only when the allowance falls short."""
        game_id = self._game_id(game_id)
        game = await self._known_game(game_id)
        currency = Currency(game["currency"])
        info = self.address_book.currency_info(currency)
        fee = to_decimal(entry_fee if entry_fee is not None else game["entry_fee"])
        units = self._to_units(fee, info.decimals, InvalidEntryFee)

        conn = await self.guard.ensure_network()
        if self.address_book.token_address(currency) is not None:
            await self.ledger.ensure_allowance(currency, units, conn)

        value = units if currency is Currency.NATIVE else 0
        logger.info(f"[WRITE] Joining game {game_id} with {fee} {info.symbol} as {conn.account}")
        await submit_call(
            conn,
            self._contract(conn).functions.joinGame(game_id),
            value=value,
            timeout=self.tx_timeout,
            description=f"join game {game_id}",
        )
        await self._games_changed()
        return True

    async def make_choice(self, game_id, choice) -> bool:
        game_id = self._game_id(game_id)
        try:
            choice = Choice(int(choice))
        except (TypeError, ValueError):
            raise ValidationError("Invalid choice. Must be Head (0) or Tail (1).") from None

        conn = await self.guard.ensure_network()
        round_number = await self._preflight_choice(game_id, conn.account)
        key = (game_id, conn.account.lower(), round_number)

        logger.info(f"[WRITE] Choice {choice.name} for game {game_id} round {round_number} by {conn.account}")
        await submit_call(
            conn,
            self._contract(conn).functions.makeChoice(game_id, int(choice)),
            timeout=self.tx_timeout,
            description=f"choice in game {game_id}",
        )
        self._choices_made.add(key)
        return True

    async def _preflight_choice(self, game_id: int, account: str) -> int:
        """Reject a choice that the contract would revert, before the wallet is prompted.

        Returns the current round number.
        """
        game = await self.reader.get_game(game_id, viewer=account)
        if game["status"] != GameStatus.IN_PROGRESS:
            raise GameNotInProgress()
        round_number = int(game["current_round"])
        if (game_id, account.lower(), round_number) in self._choices_made:
            raise ChoiceAlreadyMade()

        try:
            round_info = await self.reader.get_round_info(game_id, round_number)
        except LookupFailed as exc:
            logger.warning(f"[WRITE] Round {round_number} of game {game_id} unreadable before choice: {exc}")
        else:
            now = round_info.get("block_timestamp")
            if now is not None and round_info["deadline"] and now > round_info["deadline"]:
                raise RoundExpired()

        try:
            player = await self.reader.get_player_info(game_id, account, game["currency"])
        except PlayerNotFound:
            raise NotAPlayer() from None
        if player["eliminated"]:
            raise PlayerEliminated()
        if player["has_made_choice"]:
            self._choices_made.add((game_id, account.lower(), round_number))
            raise ChoiceAlreadyMade()
        return round_number

    async def start_game_after_countdown(self, game_id) -> bool:
        """Advance a game whose countdown has elapsed.

        Anyone may call this, so losing the race to another caller is a success.
        A refresh is triggered whatever the outcome.
        """
        game_id = self._game_id(game_id)
        try:
            conn = await self.guard.ensure_network()
            await submit_call(
                conn,
                self._contract(conn).functions.startGameAfterCountdown(game_id),
                timeout=self.tx_timeout,
                description=f"start game {game_id}",
            )
            logger.info(f"[WRITE] Game {game_id} started after countdown")
            return True
        except ArenaClientError as exc:
            if await self._already_started(game_id, exc):
                logger.info(f"[WRITE] Game {game_id} was already started by another caller")
                return True
            raise
        finally:
            await self._games_changed()

    async def _already_started(self, game_id: int, exc: ArenaClientError) -> bool:
        if isinstance(exc, UserRejected):
            return False
        if isinstance(exc, GameNotInCountdown):
            return True
        try:
            game = await self.reader.get_game(game_id)
        except ArenaClientError:
            return False
        return game["status"] in (GameStatus.IN_PROGRESS, GameStatus.COMPLETED)

    async def process_round_timeout(self, game_id) -> bool:
        game_id = self._game_id(game_id)
        conn = await self.guard.ensure_network()
        await submit_call(
            conn,
            self._contract(conn).functions.processRoundTimeout(game_id),
            timeout=self.tx_timeout,
            description=f"round timeout for game {game_id}",
        )
        await self._games_changed()
        return True

    async def withdraw_winnings(self, game_id, leave_in_yield: bool = False) -> bool:
        game_id = self._game_id(game_id)
        conn = await self.guard.ensure_network()
        logger.info(f"[WRITE] Withdrawing winnings for game {game_id} (leave in yield: {leave_in_yield})")
        await submit_call(
            conn,
            self._contract(conn).functions.withdrawWinnings(game_id, bool(leave_in_yield)),
            gas=WITHDRAW_GAS_LIMIT,
            timeout=self.tx_timeout,
            description=f"withdraw winnings for game {game_id}",
        )
        await self._games_changed()
        return True

    # -------------------------------------------------
    # Creator stake
    # -------------------------------------------------

    async def stake_as_creator(self, amount) -> bool:
        currency = Currency.STABLE_YIELD
        info = self.address_book.currency_info(currency)
        try:
            stake = to_decimal(amount)
        except ValueError:
            raise InvalidStakeAmount(f"Invalid stake amount: {amount!r}") from None
        if not stake.is_finite() or stake < MIN_CREATOR_STAKE:
            raise InvalidStakeAmount(f"Minimum stake is {MIN_CREATOR_STAKE} {info.symbol}")
        units = self._to_units(stake, info.decimals, InvalidStakeAmount)

        conn = await self.guard.ensure_network()
        await self._require_not_paused()
        await self.ledger.ensure_approval(currency, stake, conn)
        await self._require_balance(conn, currency, units)

        logger.info(f"[WRITE] Staking {stake} {info.symbol} as creator {conn.account}")
        await submit_call(
            conn,
            self._contract(conn).functions.stakeAsCreator(units),
            timeout=self.tx_timeout,
            description="creator stake",
        )
        return True

    async def unstake_creator(self) -> bool:
        """Withdraw the creator stake. Callers gate this on `unstake_allowed`."""
        conn = await self.guard.ensure_network()
        logger.info(f"[WRITE] Unstaking creator {conn.account}")
        await submit_call(
            conn,
            self._contract(conn).functions.unstakeCreator(),
            timeout=self.tx_timeout,
            description="creator unstake",
        )
        return True

    async def get_creator_stake(self, address: Optional[str] = None) -> Optional[CreatorStakeInfo]:
        if address is None:
            address = await self.guard.current_account()
        return await self.reader.get_creator_stake(address)

    async def _require_not_paused(self) -> None:
        try:
            paused = await self.reader.is_paused()
        except Exception as exc:
            logger.warning(f"[WRITE] Could not read pause flag, continuing: {exc}")
            return
        if paused:
            raise ContractPaused()

    # -------------------------------------------------
    # Helpers
    # -------------------------------------------------

    def _contract(self, conn: ActiveConnection):
        return conn.contract(self.address_book.game_manager, self.address_book.abi_for(GAME_MANAGER))

    async def _require_balance(self, conn: ActiveConnection, currency: Currency, units: int) -> None:
        info = self.address_book.currency_info(currency)
        balance = await self.ledger.get_balance_units(currency, conn)
        if balance < units:
            raise InsufficientBalance(
                format_units(balance, info.decimals), format_units(units, info.decimals), info.symbol
            )

    async def _known_game(self, game_id: int) -> GameRecord:
        if self.known_games is not None:
            for game in self.known_games() or []:
                if str(game.get("game_id")) == str(game_id):
                    return game
        return await self.reader.get_game(game_id)

    async def _games_changed(self) -> None:
        if self.on_games_changed is None:
            return
        try:
            await self.on_games_changed()
        except Exception as exc:
            logger.warning(f"[WRITE] Refresh after write failed: {exc}")

    def _validate_entry_fee(self, currency: Currency, entry_fee) -> Decimal:
        info = self.address_book.currency_info(currency)
        try:
            fee = to_decimal(entry_fee)
        except ValueError:
            raise InvalidEntryFee(f"Invalid entry fee: {entry_fee!r}") from None
        if not fee.is_finite() or fee < MIN_ENTRY_FEE:
            raise InvalidEntryFee(f"Entry fee must be at least {MIN_ENTRY_FEE}")
        if fee < info.min_entry_fee or fee > info.max_entry_fee:
            raise InvalidEntryFee(
                f"Entry fee must be between {info.min_entry_fee} and {info.max_entry_fee} {info.symbol}"
            )
        return fee

    @staticmethod
    def _validate_player_count(max_players) -> None:
        if isinstance(max_players, bool) or not isinstance(max_players, int):
            raise InvalidPlayerCount(f"Max players must be an integer, got {max_players!r}")
        if max_players < MIN_PLAYERS or max_players > MAX_PLAYERS:
            raise InvalidPlayerCount(f"Max players must be between {MIN_PLAYERS} and {MAX_PLAYERS}")

    @staticmethod
    def _validate_name(name: Optional[str]) -> str:
        if name is None or not name.strip():
            return DEFAULT_GAME_NAME
        if not is_valid_name(name):
            raise InvalidGameName(
                f"Game name must be at most {MAX_NAME_LENGTH} letters, digits, spaces or simple punctuation"
            )
        return name.strip()

    @staticmethod
    def _to_units(amount: Decimal, decimals: int, error: type) -> int:
        try:
            return parse_units(amount, decimals)
        except ValueError as exc:
            raise error(str(exc)) from None

    @staticmethod
    def _game_id(game_id) -> int:
        if not is_valid_game_id(game_id):
            raise InvalidGameId(f"Invalid game id: {game_id!r}")
        return int(game_id)
