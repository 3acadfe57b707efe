from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Optional

from web3 import Web3

# EIP-1193 provider error codes
USER_REJECTED = 4001
UNAUTHORIZED = 4100
UNRECOGNIZED_CHAIN = 4902


class ProviderRpcError(Exception):
    """Error raised by a wallet provider, carrying an EIP-1193 code."""

    def __init__(self, code: int, message: str = ""):
        self.code = code
        self.message = message or f"Provider error {code}"
        super().__init__(self.message)


ChainChangedCallback = Callable[[int], Any]


# =========================
# WalletProvider Interface
# =========================

class WalletProvider(ABC):
    """
    The WalletProvider is the single shared handle on the user's signing wallet.

    Invariants:
    - The active chain can change at any time, outside the client's control
    - switch_chain() may return before the change is observable
    - Handles returned by connect() are bound to the chain active at call time
    """

    # -------------------------------------------------
    # Accounts
    # -------------------------------------------------

    @abstractmethod
    async def request_accounts(self) -> list[str]:
        """Ask the wallet for account access. Returns checksummed addresses.

        Raises:
            ProviderRpcError: code 4001 if the user declines.
        """

    # -------------------------------------------------
    # Chain
    # -------------------------------------------------

    @abstractmethod
    async def chain_id(self) -> int:
        """Return the chain id the wallet is currently on."""

    @abstractmethod
    async def switch_chain(self, chain_id: int) -> None:
        """Ask the wallet to switch to `chain_id`.

        Raises:
            ProviderRpcError: code 4902 if the wallet does not know the chain,
                code 4001 if the user declines.
        """

    @abstractmethod
    async def add_chain(self, params: dict) -> None:
        """Register a chain with the wallet (wallet_addEthereumChain parameters)."""

    @abstractmethod
    def on_chain_changed(self, callback: ChainChangedCallback) -> None:
        """Subscribe to chain-changed notifications. Delivery is best effort."""

    @abstractmethod
    def remove_chain_changed(self, callback: ChainChangedCallback) -> None:
        """Unsubscribe a callback registered with on_chain_changed."""

    # -------------------------------------------------
    # Connection / signing
    # -------------------------------------------------

    @abstractmethod
    def connect(self) -> Any:
        """Return a fresh AsyncWeb3 handle for the currently active chain."""

    @abstractmethod
    async def send_transaction(self, w3: Any, tx: dict) -> bytes:
        """Sign and broadcast `tx` through `w3`. Returns the transaction hash.

        Raises:
            ProviderRpcError: code 4001 if the user declines to sign.
        """


@dataclass
class ActiveConnection:
    """A wallet connection verified to be on the target chain.

    Built by NetworkGuard after every check; do not keep one across a network
    switch.
    """
    w3: Any
    account: str
    chain_id: int
    wallet: WalletProvider

    def contract(self, address: str, abi: list):
        return self.w3.eth.contract(address=Web3.to_checksum_address(address), abi=abi)

    async def get_balance(self, address: Optional[str] = None) -> int:
        return int(await self.w3.eth.get_balance(address or self.account))

    async def get_code(self, address: str) -> bytes:
        return bytes(await self.w3.eth.get_code(Web3.to_checksum_address(address)))

    async def send_transaction(self, tx: dict) -> bytes:
        return await self.wallet.send_transaction(self.w3, tx)

    async def wait_for_receipt(self, tx_hash: bytes, timeout: float):
        return await self.w3.eth.wait_for_transaction_receipt(tx_hash, timeout=timeout)
