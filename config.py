import os

# Target chain. Every read and write is checked against ARENA_CHAIN_ID before it
# touches the contracts.
CHAIN_ID = int(os.environ.get("ARENA_CHAIN_ID", "5003"))
CHAIN_NAME = os.environ.get("ARENA_CHAIN_NAME", "Mantle Sepolia")
RPC_URL = os.environ.get("ARENA_RPC_URL", "https://rpc.sepolia.mantle.xyz")
EXPLORER_URL = os.environ.get("ARENA_EXPLORER_URL", "https://explorer.sepolia.mantle.xyz")
NATIVE_CURRENCY_NAME = os.environ.get("ARENA_NATIVE_CURRENCY_NAME", "Mantle")
NATIVE_CURRENCY_SYMBOL = os.environ.get("ARENA_NATIVE_CURRENCY_SYMBOL", "MNT")
NATIVE_CURRENCY_DECIMALS = int(os.environ.get("ARENA_NATIVE_CURRENCY_DECIMALS", "18"))

# Deployment addresses
GAME_MANAGER_ADDRESS = os.environ.get(
    "ARENA_GAME_MANAGER_ADDRESS", "0x495989595bb1a6c3a6acd2b36a91a0739154fb6b"
)
YIELD_VAULT_ADDRESS = os.environ.get(
    "ARENA_YIELD_VAULT_ADDRESS", "0xB47E02e88d10751Ca6FA79EbcD85fAd4a619a815"
)
USDT0_ADDRESS = os.environ.get(
    "ARENA_USDT0_ADDRESS", "0xc2B0D2A7e858F13B349843fF87dBF4EBF9227F49"
)
METH_ADDRESS = os.environ.get(
    "ARENA_METH_ADDRESS", "0xF7602C048F8C7Cc5E8c514522D633eb9A16a3a1B"
)

# Local signing wallet. Without a key the service is read-only and every write
# fails with NoWalletProvider.
WALLET_PRIVATE_KEY = os.environ.get("ARENA_WALLET_PRIVATE_KEY")
WALLET_START_CHAIN_ID = int(os.environ.get("ARENA_WALLET_START_CHAIN_ID", str(CHAIN_ID)))
# Chains the wallet already knows besides the target, as "<id>=<rpc>,<id>=<rpc>"
WALLET_EXTRA_CHAINS = os.environ.get("ARENA_WALLET_EXTRA_CHAINS", "")

# Polling
GAME_LIST_POLL_SECONDS = float(os.environ.get("ARENA_GAME_LIST_POLL_SECONDS", "10"))
WATCH_POLL_SECONDS = float(os.environ.get("ARENA_WATCH_POLL_SECONDS", "5"))
GAME_BATCH_SIZE = int(os.environ.get("ARENA_GAME_BATCH_SIZE", "20"))
GAME_BATCH_COUNT = int(os.environ.get("ARENA_GAME_BATCH_COUNT", "5"))

# Timeouts (seconds)
NETWORK_SWITCH_TIMEOUT = float(os.environ.get("ARENA_NETWORK_SWITCH_TIMEOUT", "15"))
NETWORK_SETTLE_DELAY = float(os.environ.get("ARENA_NETWORK_SETTLE_DELAY", "1"))
TX_TIMEOUT = float(os.environ.get("ARENA_TX_TIMEOUT", "180"))

LOG_LEVEL = os.environ.get("ARENA_LOG_LEVEL", "INFO")


def parse_extra_chains(raw: str) -> dict[int, str]:
    """Parse ARENA_WALLET_EXTRA_CHAINS into {chain_id: rpc_url}."""
    chains: dict[int, str] = {}
    for entry in raw.split(","):
        entry = entry.strip()
        if not entry:
            continue
        chain_id, _, rpc_url = entry.partition("=")
        if not rpc_url:
            raise ValueError(f"Invalid chain entry {entry!r}; expected '<id>=<rpc url>'")
        chains[int(chain_id)] = rpc_url.strip()
    return chains
