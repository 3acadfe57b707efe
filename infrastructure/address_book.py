"""Deployment lookup: target network parameters, contract addresses and ABIs,
and per-currency metadata.

Built once from `config` and handed to every client; nothing else reads the
environment.
"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Optional

from web3 import Web3

import config
from models.domain_models import Currency, MAX_ENTRY_FEE, MIN_ENTRY_FEE
from .abis import GAME_MANAGER_ABI, ERC20_ABI


@dataclass(frozen=True)
class NetworkParams:
    chain_id: int
    name: str
    rpc_url: str
    explorer_url: str
    native_currency_name: str = "Mantle"
    native_currency_symbol: str = "MNT"
    native_currency_decimals: int = 18

    @property
    def chain_id_hex(self) -> str:
        return hex(self.chain_id)

    def add_chain_params(self) -> dict:
        """Parameters for a wallet_addEthereumChain request."""
        return {
            "chainId": self.chain_id_hex,
            "chainName": self.name,
            "nativeCurrency": {
                "name": self.native_currency_name,
                "symbol": self.native_currency_symbol,
                "decimals": self.native_currency_decimals,
            },
            "rpcUrls": [self.rpc_url],
            "blockExplorerUrls": [self.explorer_url],
        }


@dataclass(frozen=True)
class CurrencyInfo:
    currency: Currency
    symbol: str
    decimals: int
    min_entry_fee: Decimal
    max_entry_fee: Decimal
    apy: int = 0


CURRENCIES: dict[Currency, CurrencyInfo] = {
    Currency.NATIVE: CurrencyInfo(Currency.NATIVE, "MNT", 18, MIN_ENTRY_FEE, MAX_ENTRY_FEE),
    Currency.STABLE_YIELD: CurrencyInfo(Currency.STABLE_YIELD, "USDT0", 6, Decimal("1"), Decimal("100000"), apy=5),
    Currency.STAKED_ASSET: CurrencyInfo(Currency.STAKED_ASSET, "mETH", 18, MIN_ENTRY_FEE, MAX_ENTRY_FEE, apy=4),
}

GAME_MANAGER = "GameManager"
YIELD_VAULT = "YieldVault"

_TOKEN_CONTRACTS = {
    Currency.STABLE_YIELD: "USDT0",
    Currency.STAKED_ASSET: "METH",
}


@dataclass(frozen=True)
class ChainAddressBook:
    network: NetworkParams
    addresses: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_config(cls) -> "ChainAddressBook":
        network = NetworkParams(
            chain_id=config.CHAIN_ID,
            name=config.CHAIN_NAME,
            rpc_url=config.RPC_URL,
            explorer_url=config.EXPLORER_URL,
            native_currency_name=config.NATIVE_CURRENCY_NAME,
            native_currency_symbol=config.NATIVE_CURRENCY_SYMBOL,
            native_currency_decimals=config.NATIVE_CURRENCY_DECIMALS,
        )
        return cls(network=network, addresses={
            GAME_MANAGER: config.GAME_MANAGER_ADDRESS,
            YIELD_VAULT: config.YIELD_VAULT_ADDRESS,
            "USDT0": config.USDT0_ADDRESS,
            "METH": config.METH_ADDRESS,
        })

    def address_of(self, name: str) -> str:
        try:
            return Web3.to_checksum_address(self.addresses[name])
        except KeyError:
            raise KeyError(f"No deployment address configured for {name!r}") from None

    @property
    def game_manager(self) -> str:
        return self.address_of(GAME_MANAGER)

    def token_address(self, currency: Currency) -> Optional[str]:
        """ERC20 address for a token currency; None for the native currency."""
        name = _TOKEN_CONTRACTS.get(Currency(currency))
        return self.address_of(name) if name else None

    def currency_info(self, currency: Currency) -> CurrencyInfo:
        info = CURRENCIES[Currency(currency)]
        if info.currency is Currency.NATIVE:
            # native symbol/decimals follow the configured chain
            return CurrencyInfo(
                Currency.NATIVE,
                self.network.native_currency_symbol,
                self.network.native_currency_decimals,
                info.min_entry_fee,
                info.max_entry_fee,
            )
        return info

    def abi_for(self, name: str) -> list:
        if name == GAME_MANAGER:
            return GAME_MANAGER_ABI
        if name in _TOKEN_CONTRACTS.values():
            return ERC20_ABI
        raise KeyError(f"No ABI bundled for {name!r}")

    def explorer_link(self, address: str) -> str:
        return f"{self.network.explorer_url.rstrip('/')}/address/{address}"
