import logging
from typing import Optional

from eth_account import Account
from web3 import AsyncWeb3, Web3
from web3.providers.rpc import AsyncHTTPProvider

from .wallet import (
    WalletProvider,
    ProviderRpcError,
    ChainChangedCallback,
    UNRECOGNIZED_CHAIN,
)

logger = logging.getLogger(__name__)


class LocalAccountWallet(WalletProvider):
    """Wallet backed by a local private key and a table of known RPC endpoints.

    Behaves like an injected browser wallet: it only talks to chains it has
    been told about (switching to anything else fails with 4902 until
    add_chain is called) and it notifies listeners when the active chain
    changes.
    """

    def __init__(
        self,
        private_key: str,
        *,
        chains: dict[int, str],
        active_chain_id: int,
        request_timeout: float = 30.0,
    ):
        if active_chain_id not in chains:
            raise ValueError(f"No RPC URL for starting chain {active_chain_id}")
        self._account = Account.from_key(private_key)
        self._rpc_urls = dict(chains)
        self._active_chain_id = active_chain_id
        self._request_timeout = request_timeout
        self._listeners: list[ChainChangedCallback] = []
        logger.info(f"[WALLET] Local wallet {self._account.address} on chain {active_chain_id}")

    @property
    def address(self) -> str:
        return self._account.address

    async def request_accounts(self) -> list[str]:
        return [self._account.address]

    async def chain_id(self) -> int:
        return int(await self.connect().eth.chain_id)

    async def switch_chain(self, chain_id: int) -> None:
        if chain_id not in self._rpc_urls:
            raise ProviderRpcError(UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {chain_id}")
        if chain_id == self._active_chain_id:
            return
        self._active_chain_id = chain_id
        logger.info(f"[WALLET] Switched to chain {chain_id}")
        for callback in list(self._listeners):
            try:
                callback(chain_id)
            except Exception:
                logger.exception("[WALLET] chainChanged listener failed")

    async def add_chain(self, params: dict) -> None:
        chain_id = int(params["chainId"], 16) if isinstance(params["chainId"], str) else int(params["chainId"])
        rpc_urls = params.get("rpcUrls") or []
        if not rpc_urls:
            raise ProviderRpcError(-32602, "wallet_addEthereumChain requires rpcUrls")
        self._rpc_urls[chain_id] = rpc_urls[0]
        logger.info(f"[WALLET] Added chain {chain_id} ({params.get('chainName', '')}) via {rpc_urls[0]}")

    def on_chain_changed(self, callback: ChainChangedCallback) -> None:
        self._listeners.append(callback)

    def remove_chain_changed(self, callback: ChainChangedCallback) -> None:
        if callback in self._listeners:
            self._listeners.remove(callback)

    def connect(self) -> AsyncWeb3:
        rpc_url = self._rpc_urls[self._active_chain_id]
        return AsyncWeb3(AsyncHTTPProvider(rpc_url, request_kwargs={"timeout": self._request_timeout}))

    async def send_transaction(self, w3: AsyncWeb3, tx: dict) -> bytes:
        tx = dict(tx)
        sender = self._account.address
        tx.setdefault("from", sender)
        if Web3.to_checksum_address(tx["from"]) != sender:
            raise ProviderRpcError(4100, f"Wallet cannot sign for {tx['from']}")
        if "chainId" not in tx:
            tx["chainId"] = int(await w3.eth.chain_id)
        if "nonce" not in tx:
            tx["nonce"] = await w3.eth.get_transaction_count(sender, "pending")
        if "gas" not in tx:
            tx["gas"] = await w3.eth.estimate_gas(tx)
        if "gasPrice" not in tx and "maxFeePerGas" not in tx:
            tx["gasPrice"] = await w3.eth.gas_price
        signed = self._account.sign_transaction(tx)
        tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
        logger.info(f"[WALLET] Broadcast {Web3.to_hex(tx_hash)} (nonce {tx['nonce']})")
        return tx_hash


def wallet_from_config(private_key: Optional[str], network, start_chain_id: int, extra_chains: dict[int, str]):
    """Build the process wallet, or None when no key is configured."""
    if not private_key:
        logger.warning("[WALLET] No private key configured; running read-only")
        return None
    chains = dict(extra_chains)
    if start_chain_id == network.chain_id:
        chains.setdefault(network.chain_id, network.rpc_url)
    return LocalAccountWallet(private_key, chains=chains, active_chain_id=start_chain_id)
