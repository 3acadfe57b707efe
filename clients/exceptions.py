"""
Shared exception definitions for all chain clients.

Hierarchy:
- ArenaClientError (base for all client exceptions)
  - WalletError (wallet/provider/network problems)
  - ValidationError (bad input, caught before any network call)
  - LookupFailed (game/player/round absent on-chain)
  - TransactionError (submitted or about-to-be-submitted writes)

Every class carries `retryable`: transient RPC trouble is retryable, anything
the user or the contract decided is not. RetryPolicy reads the flag.
"""


# =========================
# Base exception
# =========================

class ArenaClientError(Exception):
    """Base exception for all client-related errors."""
    retryable: bool = True
    kind: str = "ArenaClientError"

    def __init_subclass__(cls, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.kind = cls.__name__


# =========================
# Wallet / network exceptions
# =========================

class WalletError(ArenaClientError):
    retryable = True


class NoWalletProvider(WalletError):
    retryable = False

    def __init__(self, message: str = "No wallet provider configured. Set ARENA_WALLET_PRIVATE_KEY to enable writes."):
        super().__init__(message)


class UserRejected(WalletError):
    retryable = False

    def __init__(self, message: str = "Request rejected in wallet."):
        super().__init__(message)


class WalletUnauthorized(WalletError):
    retryable = False

    def __init__(self, message: str = "The wallet has not authorized this account or method."):
        super().__init__(message)


class ApprovalRejected(UserRejected):
    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Approval of {symbol} was rejected. Approve {symbol} to continue.")


class NetworkMismatch(WalletError):
    retryable = False

    def __init__(self, observed: int | None, expected: int, expected_name: str = ""):
        self.observed = observed
        self.expected = expected
        target = f"{expected_name} (Chain ID: {expected})" if expected_name else f"Chain ID {expected}"
        super().__init__(
            f"Wrong network: {describe_chain(observed)}. Please switch to {target} in your wallet."
        )


class NetworkSwitchTimeout(WalletError):
    retryable = True

    def __init__(self, expected: int, timeout: float):
        self.expected = expected
        self.timeout = timeout
        super().__init__(
            f"Network switch timeout after {timeout:g}s waiting for Chain ID {expected}; please switch manually."
        )


class ContractNotDeployed(WalletError):
    retryable = False

    def __init__(self, address: str, network_name: str = ""):
        self.address = address
        where = f" on {network_name}" if network_name else ""
        super().__init__(f"Token contract not found at {address}{where}.")


# =========================
# Validation exceptions
# =========================

class ValidationError(ArenaClientError):
    retryable = False


class InvalidEntryFee(ValidationError):
    pass


class InvalidPlayerCount(ValidationError):
    pass


class InvalidGameName(ValidationError):
    pass


class InvalidStakeAmount(ValidationError):
    pass


class InvalidGameId(ValidationError):
    pass


class InsufficientBalance(ValidationError):

    def __init__(self, have: str, need: str, symbol: str):
        self.have = have
        self.need = need
        self.symbol = symbol
        super().__init__(f"Insufficient balance: have {have} {symbol}, need {need} {symbol}.")


class UnstakeLocked(ValidationError):

    def __init__(self, active_games: int):
        self.active_games = active_games
        super().__init__(
            f"Stake is locked by {active_games} active game(s); unstaking now would incur a penalty."
        )


# =========================
# Lookup exceptions
# =========================

class LookupFailed(ArenaClientError):
    retryable = False


class GameNotFound(LookupFailed):
    pass


class PlayerNotFound(LookupFailed):
    pass


class RoundNotFound(LookupFailed):
    pass


class DecodeError(LookupFailed):
    """A contract response had neither the named nor the positional field."""
    pass


# =========================
# Transaction exceptions
# =========================

class TransactionError(ArenaClientError):
    retryable = False


class TransactionFailed(TransactionError):
    """Generic revert or confirmation failure. Message is the raw reason."""
    retryable = True


class ApprovalFailed(TransactionError):
    retryable = True


class RoundExpired(TransactionError):

    def __init__(self, message: str = "Round time has expired. Please wait for the next round."):
        super().__init__(message)


class ChoiceAlreadyMade(TransactionError):

    def __init__(self, message: str = "You have already made your choice for this round."):
        super().__init__(message)


class PlayerEliminated(TransactionError):

    def __init__(self, message: str = "You have been eliminated from this game."):
        super().__init__(message)


class NotAPlayer(TransactionError):

    def __init__(self, message: str = "You are not a player in this game."):
        super().__init__(message)


class GameNotInProgress(TransactionError):

    def __init__(self, message: str = "Game is not in progress."):
        super().__init__(message)


class GameNotInCountdown(TransactionError):

    def __init__(self, message: str = "Game is not in countdown phase."):
        super().__init__(message)


class CountdownNotExpired(TransactionError):

    def __init__(self, message: str = "Countdown has not expired yet."):
        super().__init__(message)


class NotEnoughPlayers(TransactionError):

    def __init__(self, message: str = "Not enough players to start the game."):
        super().__init__(message)


class InsufficientGasFunds(TransactionError):

    def __init__(self, message: str = "Insufficient funds for gas fees."):
        super().__init__(message)


class ContractPaused(TransactionError):
    retryable = True

    def __init__(self, message: str = "Contract is currently paused. Please try again later."):
        super().__init__(message)


# =========================
# Helpers
# =========================

KNOWN_CHAINS = {
    1: "Ethereum Mainnet",
    11155111: "Sepolia",
    5000: "Mantle Mainnet",
    5003: "Mantle Sepolia",
}


def describe_chain(chain_id: int | None) -> str:
    if chain_id is None:
        return "unknown network"
    return KNOWN_CHAINS.get(int(chain_id), f"Chain ID {chain_id}")
