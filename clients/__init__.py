# Clients
from .game_reader import GameReadClient
from .game_writer import GameWriteClient
from .token_ledger import TokenLedgerClient

# Exceptions
from .exceptions import (
    ArenaClientError,
    WalletError,
    NoWalletProvider,
    UserRejected,
    WalletUnauthorized,
    ApprovalRejected,
    NetworkMismatch,
    NetworkSwitchTimeout,
    ContractNotDeployed,
    ValidationError,
    InvalidEntryFee,
    InvalidPlayerCount,
    InvalidGameName,
    InvalidStakeAmount,
    InvalidGameId,
    InsufficientBalance,
    UnstakeLocked,
    LookupFailed,
    GameNotFound,
    PlayerNotFound,
    RoundNotFound,
    DecodeError,
    TransactionError,
    TransactionFailed,
    ApprovalFailed,
    RoundExpired,
    ChoiceAlreadyMade,
    PlayerEliminated,
    NotAPlayer,
    GameNotInProgress,
    GameNotInCountdown,
    CountdownNotExpired,
    NotEnoughPlayers,
    InsufficientGasFunds,
    ContractPaused,
)
from .errors import classify_error

__all__ = [
    # Clients
    "GameReadClient",
    "GameWriteClient",
    "TokenLedgerClient",
    # Exceptions
    "ArenaClientError",
    "WalletError",
    "NoWalletProvider",
    "UserRejected",
    "WalletUnauthorized",
    "ApprovalRejected",
    "NetworkMismatch",
    "NetworkSwitchTimeout",
    "ContractNotDeployed",
    "ValidationError",
    "InvalidEntryFee",
    "InvalidPlayerCount",
    "InvalidGameName",
    "InvalidStakeAmount",
    "InvalidGameId",
    "InsufficientBalance",
    "UnstakeLocked",
    "LookupFailed",
    "GameNotFound",
    "PlayerNotFound",
    "RoundNotFound",
    "DecodeError",
    "TransactionError",
    "TransactionFailed",
    "ApprovalFailed",
    "RoundExpired",
    "ChoiceAlreadyMade",
    "PlayerEliminated",
    "NotAPlayer",
    "GameNotInProgress",
    "GameNotInCountdown",
    "CountdownNotExpired",
    "NotEnoughPlayers",
    "InsufficientGasFunds",
    "ContractPaused",
    "classify_error",
]


# Runtime singletons and initialization helpers
from typing import Awaitable, Callable, Iterable, Optional

from web3 import AsyncWeb3
from web3.providers.rpc import AsyncHTTPProvider

import config
from infrastructure.address_book import ChainAddressBook
from infrastructure.local_wallet import wallet_from_config
from .network_guard import NetworkGuard

address_book: Optional[ChainAddressBook] = None
network_guard: Optional[NetworkGuard] = None
game_reader: Optional[GameReadClient] = None
token_ledger: Optional[TokenLedgerClient] = None
game_writer: Optional[GameWriteClient] = None
_clients_initialized = False


def init_clients(
    known_games: Optional[Callable[[], Iterable[dict]]] = None,
    on_games_changed: Optional[Callable[[], Awaitable[object]]] = None,
) -> None:
    """Build the process-wide clients from config.

    Safe to call more than once; only the first call builds anything. Without
    ARENA_WALLET_PRIVATE_KEY the guard has no wallet, reads still work and
    writes fail with NoWalletProvider.
    """
    global address_book, network_guard, game_reader, token_ledger, game_writer, _clients_initialized

    if _clients_initialized:
        return

    address_book = ChainAddressBook.from_config()
    wallet = wallet_from_config(
        config.WALLET_PRIVATE_KEY,
        address_book.network,
        config.WALLET_START_CHAIN_ID,
        config.parse_extra_chains(config.WALLET_EXTRA_CHAINS),
    )
    network_guard = NetworkGuard(
        wallet,
        address_book.network,
        switch_timeout=config.NETWORK_SWITCH_TIMEOUT,
        settle_delay=config.NETWORK_SETTLE_DELAY,
    )
    # reads use the target chain's RPC directly, independent of the wallet
    read_w3 = AsyncWeb3(AsyncHTTPProvider(address_book.network.rpc_url))
    game_reader = GameReadClient(
        address_book,
        read_w3,
        batch_size=config.GAME_BATCH_SIZE,
        batch_count=config.GAME_BATCH_COUNT,
    )
    token_ledger = TokenLedgerClient(network_guard, address_book, tx_timeout=config.TX_TIMEOUT)
    game_writer = GameWriteClient(
        network_guard,
        token_ledger,
        game_reader,
        address_book,
        known_games=known_games,
        on_games_changed=on_games_changed,
        tx_timeout=config.TX_TIMEOUT,
    )
    _clients_initialized = True


def get_address_book() -> ChainAddressBook:
    if address_book is None:
        init_clients()
    return address_book


def get_network_guard() -> NetworkGuard:
    if network_guard is None:
        init_clients()
    return network_guard


def get_game_reader() -> GameReadClient:
    if game_reader is None:
        init_clients()
    if game_reader is None:
        raise RuntimeError("Failed to initialize game reader")
    return game_reader


def get_token_ledger() -> TokenLedgerClient:
    if token_ledger is None:
        init_clients()
    return token_ledger


def get_game_writer() -> GameWriteClient:
    if game_writer is None:
        init_clients()
    if game_writer is None:
        raise RuntimeError("Failed to initialize game writer")
    return game_writer
