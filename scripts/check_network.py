#!/usr/bin/env python3
"""Verify the configured RPC serves the target chain and the contracts are deployed."""
import asyncio
import os
import sys

sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from web3 import AsyncWeb3
from web3.providers.rpc import AsyncHTTPProvider

from infrastructure.address_book import ChainAddressBook, GAME_MANAGER, YIELD_VAULT

CONTRACTS = [GAME_MANAGER, YIELD_VAULT, "USDT0", "METH"]


async def check(book: ChainAddressBook) -> bool:
    w3 = AsyncWeb3(AsyncHTTPProvider(book.network.rpc_url))
    chain_id = int(await w3.eth.chain_id)
    print(f"[VERIFY] RPC {book.network.rpc_url} reports chain {chain_id}")
    if chain_id != book.network.chain_id:
        print(f"[VERIFY] ✗ CRITICAL: expected {book.network.name} ({book.network.chain_id})")
        return False

    ok = True
    for name in CONTRACTS:
        address = book.address_of(name)
        code = await w3.eth.get_code(address)
        if code:
            print(f"[VERIFY]   ✓ {name} at {address} ({len(code)} bytes)")
        else:
            print(f"[VERIFY]   ✗ {name}: no code at {address} ({book.explorer_link(address)})")
            ok = False
    return ok


if __name__ == "__main__":
    try:
        success = asyncio.run(check(ChainAddressBook.from_config()))
    except Exception as e:
        print(f"[VERIFY] ✗ Error checking network: {e}")
        sys.exit(1)
    print("[VERIFY] ✓ All contracts present" if success else "[VERIFY] ✗ Deployment incomplete")
    sys.exit(0 if success else 1)
