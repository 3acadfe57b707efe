import logging

from fastapi.responses import JSONResponse

from clients.exceptions import (
	ArenaClientError,
	ValidationError,
	InsufficientBalance,
	InsufficientGasFunds,
	UnstakeLocked,
	UserRejected,
	WalletUnauthorized,
	NoWalletProvider,
	NetworkMismatch,
	NetworkSwitchTimeout,
	DecodeError,
	LookupFailed,
	RoundExpired,
	ChoiceAlreadyMade,
	PlayerEliminated,
	NotAPlayer,
	GameNotInProgress,
	GameNotInCountdown,
	CountdownNotExpired,
	NotEnoughPlayers,
	ContractPaused,
)

logger = logging.getLogger(__name__)

# First match wins, so subclasses come before their bases.
STATUS_BY_KIND: list[tuple[type, int]] = [
	(InsufficientBalance, 402),
	(InsufficientGasFunds, 402),
	(UnstakeLocked, 409),
	(ValidationError, 400),
	(UserRejected, 403),
	(WalletUnauthorized, 403),
	(NoWalletProvider, 503),
	(NetworkMismatch, 409),
	(NetworkSwitchTimeout, 504),
	(DecodeError, 502),
	(LookupFailed, 404),
	(RoundExpired, 409),
	(ChoiceAlreadyMade, 409),
	(PlayerEliminated, 409),
	(NotAPlayer, 409),
	(GameNotInProgress, 409),
	(GameNotInCountdown, 409),
	(CountdownNotExpired, 409),
	(NotEnoughPlayers, 409),
	(ContractPaused, 409),
]


def status_for(exc: ArenaClientError) -> int:
	for kind, status in STATUS_BY_KIND:
		if isinstance(exc, kind):
			return status
	return 502


def error_response(exc: ArenaClientError) -> JSONResponse:
	"""JSON body `{"error": kind, "message": text}` with the kind's status code."""
	status = status_for(exc)
	if status >= 500:
		logger.warning(f"{exc.kind}: {exc}")
	return JSONResponse(status_code=status, content={"error": exc.kind, "message": str(exc)})
