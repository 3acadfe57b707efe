"""Minimal ABIs for the contract surface the client consumes.

Only the functions and events the clients call are listed. Output names match
the deployed contract so web3 can return named fields; the decoders in
`clients.decoding` still fall back to positions when names are missing.
"""


def _fn(name, inputs, outputs, mutability="view"):
    return {
        "type": "function",
        "name": name,
        "stateMutability": mutability,
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


def _event(name, inputs):
    return {
        "type": "event",
        "name": name,
        "anonymous": False,
        "inputs": [{"name": n, "type": t, "indexed": indexed} for n, t, indexed in inputs],
    }


GAME_MANAGER_ABI = [
    # ---- reads ----
    _fn("stats", [], [
        ("totalGames", "uint256"),
        ("totalPlayers", "uint256"),
        ("totalPrizesDistributed", "uint256"),
    ]),
    _fn("getGame", [("gameId", "uint256")], [
        ("gameId_", "uint256"),
        ("mode", "uint8"),
        ("status", "uint8"),
        ("currency", "uint8"),
        ("entryFee", "uint256"),
        ("maxPlayers", "uint256"),
        ("currentRound", "uint256"),
        ("winner", "address"),
        ("totalPrizePool", "uint256"),
        ("yieldAccumulated", "uint256"),
        ("playerCount", "uint256"),
        ("gameName", "string"),
    ]),
    _fn("games", [("", "uint256")], [
        ("creator", "address"),
        ("startTime", "uint256"),
        ("countdownStartTime", "uint256"),
        ("yieldProtocol", "uint8"),
        ("yieldDistributed", "bool"),
        ("minPlayers", "uint256"),
    ]),
    _fn("getGamePlayers", [("gameId", "uint256")], [("", "address[]")]),
    _fn("getPlayerInfo", [("gameId", "uint256"), ("player", "address")], [
        ("isPlaying", "bool"),
        ("hasMadeChoice", "bool"),
        ("choice", "uint8"),
        ("eliminated", "bool"),
        ("roundEliminated", "uint256"),
        ("entryAmount", "uint256"),
    ]),
    _fn("rounds", [("", "uint256"), ("", "uint256")], [
        ("deadline", "uint256"),
        ("processed", "bool"),
        ("winningChoice", "uint8"),
        ("headCount", "uint256"),
        ("tailCount", "uint256"),
    ]),
    _fn("getCountdownTimeRemaining", [("gameId", "uint256")], [("", "uint256")]),
    _fn("getCreatorStake", [("creator", "address")], [
        ("stakedAmount", "uint256"),
        ("yieldAccumulated", "uint256"),
        ("timestamp", "uint256"),
        ("activeGamesCount", "uint256"),
        ("hasStaked", "bool"),
    ]),
    _fn("winningsWithdrawn", [("", "uint256")], [("", "bool")]),
    _fn("paused", [], [("", "bool")]),
    # ---- writes ----
    _fn("createQuickPlayGame", [("name", "string"), ("entryFee", "uint256"), ("maxPlayers", "uint256")],
        [("", "uint256")], "payable"),
    _fn("createQuickPlayGameUSDT0", [("name", "string"), ("entryFee", "uint256"), ("maxPlayers", "uint256")],
        [("", "uint256")], "nonpayable"),
    _fn("createQuickPlayGameMETH", [("name", "string"), ("entryFee", "uint256"), ("maxPlayers", "uint256")],
        [("", "uint256")], "nonpayable"),
    _fn("joinGame", [("gameId", "uint256")], [], "payable"),
    _fn("makeChoice", [("gameId", "uint256"), ("choice", "uint8")], [], "nonpayable"),
    _fn("startGameAfterCountdown", [("gameId", "uint256")], [], "nonpayable"),
    _fn("processRoundTimeout", [("gameId", "uint256")], [], "nonpayable"),
    _fn("withdrawWinnings", [("gameId", "uint256"), ("leaveInYield", "bool")], [], "nonpayable"),
    _fn("stakeAsCreator", [("amount", "uint256")], [], "nonpayable"),
    _fn("unstakeCreator", [], [], "nonpayable"),
    # ---- events ----
    _event("GameCreated", [
        ("gameId", "uint256", True),
        ("creator", "address", True),
        ("mode", "uint8", False),
        ("currency", "uint8", False),
        ("entryFee", "uint256", False),
    ]),
    _event("ChoiceMade", [
        ("gameId", "uint256", True),
        ("player", "address", True),
        ("round", "uint256", False),
        ("choice", "uint8", False),
    ]),
]

ERC20_ABI = [
    _fn("approve", [("spender", "address"), ("amount", "uint256")], [("", "bool")], "nonpayable"),
    _fn("allowance", [("owner", "address"), ("spender", "address")], [("", "uint256")]),
    _fn("balanceOf", [("account", "address")], [("", "uint256")]),
    _fn("decimals", [], [("", "uint8")]),
]
