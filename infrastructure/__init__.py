"""Chain-facing infrastructure: deployment lookup, wallet provider, retry policy.

Expose a small public surface used by the clients and app startup.
"""
from .address_book import (
    ChainAddressBook,
    NetworkParams,
    CurrencyInfo,
    CURRENCIES,
    GAME_MANAGER,
    YIELD_VAULT,
)
from .wallet import (
    WalletProvider,
    ActiveConnection,
    ProviderRpcError,
    USER_REJECTED,
    UNRECOGNIZED_CHAIN,
)
from .local_wallet import LocalAccountWallet, wallet_from_config
from .retry import RetryPolicy, is_transient

__all__ = [
    "ChainAddressBook",
    "NetworkParams",
    "CurrencyInfo",
    "CURRENCIES",
    "GAME_MANAGER",
    "YIELD_VAULT",
    "WalletProvider",
    "ActiveConnection",
    "ProviderRpcError",
    "USER_REJECTED",
    "UNRECOGNIZED_CHAIN",
    "LocalAccountWallet",
    "wallet_from_config",
    "RetryPolicy",
    "is_transient",
]
