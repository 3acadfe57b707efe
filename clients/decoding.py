"""Tolerant decoders for contract return values.

Depending on the ABI and web3 version a call can come back as a plain tuple,
a named tuple, an AttributeDict or a dict. Each decoder below is an explicit
field table: resolve by name first, then by position, so no call site assumes
one shape.
"""
from collections.abc import Mapping
from typing import Any, Iterable

from web3 import Web3

from .exceptions import DecodeError

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"

_MISSING = object()


class ShapeDecoder:
    """Resolve fields of one contract return shape.

    `fields` maps our field name to (contract output name, positional index).
    """

    def __init__(self, name: str, fields: dict[str, tuple[str, int]]):
        self.name = name
        self.fields = fields

    def field(self, raw: Any, key: str, default: Any = _MISSING) -> Any:
        if key not in self.fields:
            raise KeyError(f"{self.name} has no field {key!r}")
        contract_name, index = self.fields[key]

        if isinstance(raw, Mapping) and contract_name in raw:
            return raw[contract_name]
        if not isinstance(raw, (str, bytes)) and hasattr(raw, contract_name):
            return getattr(raw, contract_name)
        if isinstance(raw, (list, tuple)) and 0 <= index < len(raw):
            return raw[index]
        if default is not _MISSING:
            return default
        raise DecodeError(f"{self.name}: field {key!r} missing by name and by position {index}")

    def decode(self, raw: Any, *keys: str) -> dict:
        """Resolve several fields at once; missing ones raise DecodeError."""
        return {key: self.field(raw, key) for key in (keys or self.fields)}


STATS = ShapeDecoder("stats", {
    "total_games": ("totalGames", 0),
    "total_players": ("totalPlayers", 1),
    "total_prizes_distributed": ("totalPrizesDistributed", 2),
})

GAME_VIEW = ShapeDecoder("getGame", {
    "game_id": ("gameId_", 0),
    "mode": ("mode", 1),
    "status": ("status", 2),
    "currency": ("currency", 3),
    "entry_fee": ("entryFee", 4),
    "max_players": ("maxPlayers", 5),
    "current_round": ("currentRound", 6),
    "winner": ("winner", 7),
    "total_prize_pool": ("totalPrizePool", 8),
    "yield_accumulated": ("yieldAccumulated", 9),
    "player_count": ("playerCount", 10),
    "name": ("gameName", 11),
})

GAME_STRUCT = ShapeDecoder("games", {
    "creator": ("creator", 0),
    "start_time": ("startTime", 1),
    "countdown_start_time": ("countdownStartTime", 2),
    "yield_protocol": ("yieldProtocol", 3),
    "yield_distributed": ("yieldDistributed", 4),
    "min_players": ("minPlayers", 5),
})

PLAYER_INFO = ShapeDecoder("getPlayerInfo", {
    "is_playing": ("isPlaying", 0),
    "has_made_choice": ("hasMadeChoice", 1),
    "choice": ("choice", 2),
    "eliminated": ("eliminated", 3),
    "round_eliminated": ("roundEliminated", 4),
    "entry_amount": ("entryAmount", 5),
})

ROUND_INFO = ShapeDecoder("rounds", {
    "deadline": ("deadline", 0),
    "processed": ("processed", 1),
    "winning_choice": ("winningChoice", 2),
    "head_count": ("headCount", 3),
    "tail_count": ("tailCount", 4),
})

CREATOR_STAKE = ShapeDecoder("getCreatorStake", {
    "staked_amount": ("stakedAmount", 0),
    "yield_accumulated": ("yieldAccumulated", 1),
    "timestamp": ("timestamp", 2),
    "active_games_count": ("activeGamesCount", 3),
    "has_staked": ("hasStaked", 4),
})


def is_zero_address(address: Any) -> bool:
    return not address or str(address).lower() == ZERO_ADDRESS


def normalize_address(address: Any) -> str:
    return Web3.to_checksum_address(address)


def decode_address_list(raw: Iterable[Any]) -> list[str]:
    """Checksummed addresses in contract order, zero address dropped, duplicates removed."""
    seen: set[str] = set()
    result: list[str] = []
    for address in raw or []:
        if is_zero_address(address):
            continue
        checksummed = normalize_address(address)
        key = checksummed.lower()
        if key in seen:
            continue
        seen.add(key)
        result.append(checksummed)
    return result
