"""Translate raw wallet/web3 failures into the client exception taxonomy.

Contract reverts arrive as free-form strings ("execution reverted: Round time
expired"); the table below maps known fragments to stable kinds. Anything not
recognized becomes TransactionFailed carrying the raw message.
"""
import asyncio
from typing import Optional

from web3.exceptions import ContractLogicError, TimeExhausted

from infrastructure.wallet import ProviderRpcError, USER_REJECTED, UNAUTHORIZED
from .exceptions import (
    ArenaClientError,
    UserRejected,
    WalletUnauthorized,
    TransactionFailed,
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

# Checked in order; first fragment found in the lowercased reason wins.
REVERT_REASONS: list[tuple[tuple[str, ...], type]] = [
    (("user rejected", "user denied", "action_rejected"), UserRejected),
    (("round time expired", "round expired"), RoundExpired),
    (("choice already made", "already made"), ChoiceAlreadyMade),
    (("already eliminated", "eliminated"), PlayerEliminated),
    (("not a player",), NotAPlayer),
    (("game not in countdown", "not in countdown"), GameNotInCountdown),
    (("countdown not expired",), CountdownNotExpired),
    (("not enough players",), NotEnoughPlayers),
    (("game not in progress", "not in progress"), GameNotInProgress),
    (("insufficient funds",), InsufficientGasFunds),
    (("paused",), ContractPaused),
]

# Reverts without a dedicated kind, reworded for display
FRIENDLY_REASONS: dict[str, str] = {
    "not the winner": "You are not the winner of this game",
    "game not completed": "Game is not completed yet",
    "already withdrawn": "Winnings have already been withdrawn",
    "yield not yet distributed": "Yield has not been distributed yet",
    "already staked": "You have already staked as a creator",
    "not staked": "You have no creator stake",
}


def revert_reason(exc: BaseException) -> str:
    """Best-effort human reason from a web3/provider exception."""
    message = getattr(exc, "message", None)
    if isinstance(message, str) and message:
        reason = message
    else:
        reason = str(exc) or exc.__class__.__name__
    prefix = "execution reverted: "
    if reason.lower().startswith(prefix):
        reason = reason[len(prefix):]
    return reason


def classify_reason(reason: str) -> Optional[type]:
    lowered = reason.lower()
    for fragments, kind in REVERT_REASONS:
        if any(fragment in lowered for fragment in fragments):
            return kind
    return None


def classify_error(exc: BaseException) -> ArenaClientError:
    """Map any failure raised while submitting a write to an ArenaClientError."""
    if isinstance(exc, ArenaClientError):
        return exc
    if isinstance(exc, ProviderRpcError) and exc.code == USER_REJECTED:
        return UserRejected("Transaction cancelled in wallet.")
    if isinstance(exc, ProviderRpcError) and exc.code == UNAUTHORIZED:
        return WalletUnauthorized(f"The wallet refused to sign: {exc.message}")
    if isinstance(exc, (TimeExhausted, asyncio.TimeoutError)):
        return TransactionFailed(f"Transaction was not confirmed in time: {exc}")

    reason = revert_reason(exc)
    kind = classify_reason(reason)
    if kind is UserRejected:
        return UserRejected("Transaction cancelled in wallet.")
    if kind is not None:
        return kind()
    lowered = reason.lower()
    for fragment, friendly in FRIENDLY_REASONS.items():
        if fragment in lowered:
            return TransactionFailed(friendly)
    if isinstance(exc, ContractLogicError):
        return TransactionFailed(f"Contract reverted: {reason}")
    return TransactionFailed(reason)
