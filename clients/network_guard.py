"""Network guard: the single source of truth for "is the wallet on the target chain".

Every read or write that needs the wallet goes through `ensure_network()`,
which returns a freshly built `ActiveConnection` verified against the target
chain id. Switch negotiations are serialized: wallets queue chain-switch
prompts, so a second caller waits for the first negotiation to resolve.
"""
import asyncio
import logging
from typing import Awaitable, Callable, Optional

from .exceptions import (
    ArenaClientError,
    WalletError,
    WalletUnauthorized,
    NoWalletProvider,
    UserRejected,
    NetworkMismatch,
    NetworkSwitchTimeout,
)
from infrastructure.address_book import NetworkParams
from infrastructure.retry import RetryPolicy
from infrastructure.wallet import (
    ActiveConnection,
    ProviderRpcError,
    WalletProvider,
    USER_REJECTED,
    UNAUTHORIZED,
    UNRECOGNIZED_CHAIN,
)

logger = logging.getLogger(__name__)


class NetworkGuard:

    def __init__(
        self,
        wallet: Optional[WalletProvider],
        network: NetworkParams,
        *,
        switch_timeout: float = 15.0,
        settle_delay: float = 1.0,
        poll_interval: float = 0.5,
        chain_id_retry: Optional[RetryPolicy] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.wallet = wallet
        self.network = network
        self.switch_timeout = switch_timeout
        self.settle_delay = settle_delay
        self.poll_interval = poll_interval
        self._chain_id_retry = chain_id_retry or RetryPolicy(max_attempts=3, base_delay=0.5, sleep=sleep)
        self._sleep = sleep
        self._lock = asyncio.Lock()

    @property
    def target_chain_id(self) -> int:
        return self.network.chain_id

    async def ensure_network(self) -> ActiveConnection:
        """Return a connection on the target chain, switching (or adding) the chain if needed.

        Raises:
            NoWalletProvider: no wallet is configured.
            UserRejected: account access or the chain switch was declined.
            NetworkMismatch: switch and add both failed, or the wallet ended up elsewhere.
            NetworkSwitchTimeout: the switch was accepted but never became observable.
        """
        wallet = self._require_wallet()
        async with self._lock:
            account = await self._request_account(wallet)
            current = await self._read_chain_id(wallet)
            if current == self.target_chain_id:
                return ActiveConnection(w3=wallet.connect(), account=account, chain_id=current, wallet=wallet)

            logger.info(
                f"[GUARD] Wallet on chain {current}, switching to {self.network.name} ({self.target_chain_id})"
            )
            await self._request_switch(wallet, current)
            await self._wait_for_target(wallet)
            await self._sleep(self.settle_delay)

            # A handle built before the switch may still point at the old chain.
            w3 = wallet.connect()
            final = await self._read_chain_id(wallet)
            if final != self.target_chain_id:
                raise NetworkMismatch(final, self.target_chain_id, self.network.name)
            logger.info(f"[GUARD] Now on {self.network.name} ({final})")
            return ActiveConnection(w3=w3, account=account, chain_id=final, wallet=wallet)

    async def current_account(self) -> str:
        wallet = self._require_wallet()
        return await self._request_account(wallet)

    # -------------------------------------------------
    # Internals
    # -------------------------------------------------

    def _require_wallet(self) -> WalletProvider:
        if self.wallet is None:
            raise NoWalletProvider()
        return self.wallet

    async def _request_account(self, wallet: WalletProvider) -> str:
        try:
            accounts = await wallet.request_accounts()
        except ProviderRpcError as exc:
            if exc.code == USER_REJECTED:
                raise UserRejected("Please connect your wallet to continue.") from exc
            if exc.code == UNAUTHORIZED:
                raise WalletUnauthorized("The wallet has not authorized this site to access its accounts.") from exc
            raise WalletError(f"Wallet account request failed: {exc.message}") from exc
        if not accounts:
            raise NoWalletProvider("Wallet returned no accounts.")
        return accounts[0]

    async def _read_chain_id(self, wallet: WalletProvider) -> int:
        try:
            return int(await self._chain_id_retry.run(wallet.chain_id, description="chain id check"))
        except ArenaClientError:
            raise
        except Exception as exc:
            logger.error(f"[GUARD] Chain id unreadable after retries: {exc}")
            raise WalletError(f"Could not read the wallet's network: {exc}") from exc

    async def _request_switch(self, wallet: WalletProvider, observed: int) -> None:
        target = self.target_chain_id
        try:
            await wallet.switch_chain(target)
            return
        except ProviderRpcError as exc:
            if exc.code == USER_REJECTED:
                raise UserRejected(f"Network switch to {self.network.name} was rejected.") from exc
            if exc.code != UNRECOGNIZED_CHAIN:
                logger.error(f"[GUARD] Switch to {target} failed: {exc}")
                raise NetworkMismatch(observed, target, self.network.name) from exc

        logger.info(f"[GUARD] Wallet does not know chain {target}; adding {self.network.name}")
        try:
            await wallet.add_chain(self.network.add_chain_params())
            await wallet.switch_chain(target)
        except ProviderRpcError as exc:
            if exc.code == USER_REJECTED:
                raise UserRejected(f"Adding {self.network.name} to the wallet was rejected.") from exc
            logger.error(f"[GUARD] Add+switch to {target} failed: {exc}")
            raise NetworkMismatch(observed, target, self.network.name) from exc

    async def _wait_for_target(self, wallet: WalletProvider) -> None:
        """Wait until the wallet reports the target chain.

        Races the chain-changed notification against polling, since the
        notification can be missed. Listener and poller are torn down on every
        exit path.
        """
        loop = asyncio.get_running_loop()
        switched: asyncio.Future = loop.create_future()
        target = self.target_chain_id

        def on_changed(chain_id) -> None:
            chain_id = int(chain_id, 16) if isinstance(chain_id, str) else int(chain_id)
            logger.debug(f"[GUARD] chainChanged -> {chain_id}")
            if chain_id == target and not switched.done():
                switched.set_result("event")

        async def poll() -> str:
            while True:
                try:
                    if int(await wallet.chain_id()) == target:
                        return "poll"
                except Exception as exc:
                    # the RPC may be mid-switch; keep polling until the timeout
                    logger.debug(f"[GUARD] chain id poll failed: {exc}")
                await self._sleep(self.poll_interval)

        wallet.on_chain_changed(on_changed)
        poller = asyncio.ensure_future(poll())
        try:
            done, _ = await asyncio.wait(
                {switched, poller},
                timeout=self.switch_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
            if not done:
                raise NetworkSwitchTimeout(target, self.switch_timeout)
            winner = done.pop()
            logger.debug(f"[GUARD] Switch confirmed via {winner.result()}")
        finally:
            wallet.remove_chain_changed(on_changed)
            poller.cancel()
            if not switched.done():
                switched.cancel()
