"""Transaction submission and receipt log scanning.

`submit_call` always ends in either a confirmed, successful receipt or an
exception; there is no "maybe" outcome for a write.
"""
import logging
from typing import Any, Optional

from web3 import Web3
from web3.exceptions import MismatchedABI, LogTopicError

from infrastructure.wallet import ActiveConnection
from .errors import classify_error
from .exceptions import TransactionFailed

logger = logging.getLogger(__name__)

DEFAULT_TX_TIMEOUT = 180.0


async def submit_call(
    conn: ActiveConnection,
    call: Any,
    *,
    value: int = 0,
    gas: Optional[int] = None,
    timeout: float = DEFAULT_TX_TIMEOUT,
    description: str = "transaction",
):
    """Build, sign, broadcast and confirm a contract call.

    Raises a classified ArenaClientError on rejection, revert or timeout.
    """
    params: dict = {"from": conn.account}
    if value:
        params["value"] = int(value)
    if gas is not None:
        params["gas"] = int(gas)
    try:
        tx = await call.build_transaction(params)
        tx_hash = await conn.send_transaction(tx)
        logger.info(f"[TX] {description} submitted: {_hex(tx_hash)}")
        receipt = await conn.wait_for_receipt(tx_hash, timeout)
    except Exception as exc:
        error = classify_error(exc)
        logger.warning(f"[TX] {description} failed: {error.__class__.__name__}: {error}")
        raise error from exc

    if receipt is None:
        raise TransactionFailed(f"{description}: receipt not found")
    if int(receipt["status"]) != 1:
        reason = await _replay_for_reason(conn, call, params)
        error = classify_error(Exception(reason))
        logger.warning(f"[TX] {description} reverted in block {receipt.get('blockNumber')}: {error}")
        raise error
    logger.info(f"[TX] {description} confirmed in block {receipt.get('blockNumber')}")
    return receipt


async def _replay_for_reason(conn: ActiveConnection, call: Any, params: dict) -> Optional[str]:
    """Re-run a reverted call as eth_call to recover its revert reason."""
    try:
        await call.call({k: v for k, v in params.items() if k != "gas"})
    except Exception as exc:
        return getattr(exc, "message", None) or str(exc)
    return "Transaction reverted during execution (check contract state)"


def decode_event(event: Any, log: Any) -> Optional[Any]:
    """Decode one log entry against one event ABI; None when it does not match."""
    try:
        return event.process_log(log)
    except (MismatchedABI, LogTopicError, ValueError, KeyError, TypeError):
        return None


def find_event(contract: Any, receipt: Any, event_name: str) -> Optional[Any]:
    """First log in `receipt` that decodes as `event_name`, or None.

    No match is a normal outcome: logs can come from other contracts, or the
    bundled ABI can lag the deployment.
    """
    event = getattr(contract.events, event_name)()
    for log in receipt.get("logs", []) or []:
        decoded = decode_event(event, log)
        if decoded is not None:
            return decoded
    return None


def _hex(value: Any) -> str:
    if isinstance(value, (bytes, bytearray)):
        return Web3.to_hex(value)
    return str(value)
