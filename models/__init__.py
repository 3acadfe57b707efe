"""Data models used by the application.

Split into:
- `api_models`: Pydantic models used for request/response validation
- `domain_models`: enums, constants and typed dicts used by the clients

Import submodules to make them available as `models.api_models`.
"""

from . import api_models, domain_models

# Re-export selected API models (Pydantic models used for request/response)
from .api_models import (
	CreateGameRequest,
	JoinGameRequest,
	MakeChoiceRequest,
	WithdrawRequest,
	StakeRequest,
	WatchRequest,
	GameResponse,
	GameListResponse,
	CreateGameResponse,
	TxResultResponse,
	PlayerInfoResponse,
	RoundInfoResponse,
	RoundStatisticsResponse,
	PlayerChoiceResponse,
	WithdrawnResponse,
	WatchResponse,
	CreatorStakeResponse,
	BalanceResponse,
	NetworkResponse,
	ErrorResponse,
)

# Re-export domain models (enums and TypedDicts)
from .domain_models import (
	Currency,
	GameMode,
	GameStatus,
	Choice,
	GameRecord,
	PlayerInfo,
	RoundInfo,
	PlayerChoice,
	CreatorStakeInfo,
	can_join,
	unstake_allowed,
	featured_games,
	active_games,
)

__all__ = [
	# submodules
	"api_models",
	"domain_models",
	# api models
	"CreateGameRequest",
	"JoinGameRequest",
	"MakeChoiceRequest",
	"WithdrawRequest",
	"StakeRequest",
	"WatchRequest",
	"GameResponse",
	"GameListResponse",
	"CreateGameResponse",
	"TxResultResponse",
	"PlayerInfoResponse",
	"RoundInfoResponse",
	"RoundStatisticsResponse",
	"PlayerChoiceResponse",
	"WithdrawnResponse",
	"WatchResponse",
	"CreatorStakeResponse",
	"BalanceResponse",
	"NetworkResponse",
	"ErrorResponse",
	# domain models
	"Currency",
	"GameMode",
	"GameStatus",
	"Choice",
	"GameRecord",
	"PlayerInfo",
	"RoundInfo",
	"PlayerChoice",
	"CreatorStakeInfo",
	"can_join",
	"unstake_allowed",
	"featured_games",
	"active_games",
]
