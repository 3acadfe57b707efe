"""Balances, allowances and approvals for the game's currencies.

The native currency needs no approval and is a pass-through everywhere here.
"""
import asyncio
import logging
from typing import Optional

from models.domain_models import Currency
from infrastructure.address_book import ChainAddressBook, CurrencyInfo
from infrastructure.abis import ERC20_ABI
from infrastructure.retry import RetryPolicy, is_transient
from infrastructure.wallet import ActiveConnection
from utils.units import MAX_UINT256, format_units
from .network_guard import NetworkGuard
from .transactions import submit_call, DEFAULT_TX_TIMEOUT
from .exceptions import (
    ArenaClientError,
    ApprovalFailed,
    ApprovalRejected,
    ContractNotDeployed,
    UserRejected,
)

logger = logging.getLogger(__name__)


def _code_check_transient(exc: BaseException) -> bool:
    # right after a network switch the RPC can briefly report empty code
    return isinstance(exc, ContractNotDeployed) or is_transient(exc)


class TokenLedgerClient:

    def __init__(
        self,
        guard: NetworkGuard,
        address_book: ChainAddressBook,
        *,
        code_check_retry: Optional[RetryPolicy] = None,
        read_retry: Optional[RetryPolicy] = None,
        tx_timeout: float = DEFAULT_TX_TIMEOUT,
    ):
        self.guard = guard
        self.address_book = address_book
        self.code_check_retry = code_check_retry or RetryPolicy(
            max_attempts=5, base_delay=1.0, transient=_code_check_transient
        )
        self.read_retry = read_retry or RetryPolicy(max_attempts=3, base_delay=0.5)
        self.tx_timeout = tx_timeout
        self._approval_locks: dict[tuple[Currency, str], asyncio.Lock] = {}

    # -------------------------------------------------
    # Reads
    # -------------------------------------------------

    async def get_balance_units(self, currency: Currency, conn: Optional[ActiveConnection] = None) -> int:
        conn = conn or await self.guard.ensure_network()
        token = self.address_book.token_address(currency)
        if token is None:
            return await conn.get_balance()
        contract = conn.contract(token, ERC20_ABI)
        return int(await contract.functions.balanceOf(conn.account).call())

    async def get_balance(self, currency: Currency, conn: Optional[ActiveConnection] = None) -> str:
        """Account balance in human units, formatted with the currency's precision."""
        return self.from_units(currency, await self.get_balance_units(currency, conn))

    async def get_allowance(self, currency: Currency, conn: Optional[ActiveConnection] = None) -> int:
        """Raw allowance granted to the game manager; unlimited for the native currency."""
        token = self.address_book.token_address(currency)
        if token is None:
            return MAX_UINT256
        conn = conn or await self.guard.ensure_network()
        contract = conn.contract(token, ERC20_ABI)
        spender = self.address_book.game_manager

        async def read() -> int:
            return int(await contract.functions.allowance(conn.account, spender).call())

        return await self.read_retry.run(read, description=f"{self.symbol(currency)} allowance read")

    # -------------------------------------------------
    # Approvals
    # -------------------------------------------------

    async def ensure_approval(self, currency: Currency, amount=None, conn: Optional[ActiveConnection] = None) -> bool:
        """Approve the game manager to spend `currency` on the account's behalf.

        Native currency returns True immediately, without touching the wallet.
        Otherwise always approves the maximum amount and waits for confirmation;
        `amount` is only used for logging.

        Raises:
            NoWalletProvider, ContractNotDeployed, ApprovalRejected, ApprovalFailed
        """
        currency = Currency(currency)
        token = self.address_book.token_address(currency)
        if token is None:
            return True

        spender = self.address_book.game_manager
        symbol = self.symbol(currency)
        async with self._lock_for(currency, spender):
            conn = conn or await self.guard.ensure_network()
            await self._require_code(conn, token)

            contract = conn.contract(token, ERC20_ABI)
            logger.info(f"[LEDGER] Approving {symbol} for {spender} (needed: {amount if amount is not None else 'n/a'})")
            try:
                await submit_call(
                    conn,
                    contract.functions.approve(spender, MAX_UINT256),
                    timeout=self.tx_timeout,
                    description=f"{symbol} approval",
                )
            except UserRejected as exc:
                raise ApprovalRejected(symbol) from exc
            except ArenaClientError as exc:
                raise ApprovalFailed(f"{symbol} approval failed: {exc}") from exc
            logger.info(f"[LEDGER] {symbol} approval confirmed")
            return True

    async def ensure_allowance(self, currency: Currency, amount_units: int, conn: Optional[ActiveConnection] = None) -> bool:
        """Approve only when the current allowance does not cover `amount_units`.

        Returns True when an approval transaction was sent.
        """
        currency = Currency(currency)
        if self.address_book.token_address(currency) is None:
            return False
        conn = conn or await self.guard.ensure_network()
        allowance = await self.get_allowance(currency, conn)
        if allowance >= int(amount_units):
            logger.debug(f"[LEDGER] {self.symbol(currency)} allowance {allowance} covers {amount_units}")
            return False
        await self.ensure_approval(currency, amount_units, conn)
        return True

    async def _require_code(self, conn: ActiveConnection, token: str) -> None:
        async def check() -> None:
            code = await conn.get_code(token)
            if not code:
                raise ContractNotDeployed(token, self.address_book.network.name)

        await self.code_check_retry.run(check, description=f"code check for {token}")

    def _lock_for(self, currency: Currency, spender: str) -> asyncio.Lock:
        key = (currency, spender.lower())
        lock = self._approval_locks.get(key)
        if lock is None:
            lock = self._approval_locks[key] = asyncio.Lock()
        return lock

    # -------------------------------------------------
    # Currency helpers
    # -------------------------------------------------

    def currency_info(self, currency: Currency) -> CurrencyInfo:
        return self.address_book.currency_info(currency)

    def symbol(self, currency: Currency) -> str:
        return self.currency_info(currency).symbol

    def from_units(self, currency: Currency, units: int) -> str:
        return format_units(units, self.currency_info(currency).decimals)
