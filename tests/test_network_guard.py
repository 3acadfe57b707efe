import asyncio

import pytest

from clients.exceptions import (
    ArenaClientError,
    NetworkMismatch,
    NetworkSwitchTimeout,
    NoWalletProvider,
    UserRejected,
    WalletError,
    WalletUnauthorized,
)
from clients.network_guard import NetworkGuard
from infrastructure.retry import RetryPolicy
from infrastructure.wallet import ProviderRpcError, UNAUTHORIZED
from fakes import OTHER_CHAIN, TARGET_CHAIN, FakeWallet, make_address_book


def build_guard(wallet, **kwargs):
    options = dict(
        switch_timeout=1.0,
        settle_delay=0,
        poll_interval=0.01,
        chain_id_retry=RetryPolicy(max_attempts=3, base_delay=0),
    )
    options.update(kwargs)
    return NetworkGuard(wallet, make_address_book().network, **options)


def test_on_target_chain_returns_without_switching():
    wallet = FakeWallet(chain_id=TARGET_CHAIN)
    conn = asyncio.run(build_guard(wallet).ensure_network())
    assert conn.chain_id == TARGET_CHAIN
    assert wallet.switch_calls == []
    assert wallet.add_calls == []


def test_switches_once_and_returns_fresh_connection():
    wallet = FakeWallet(chain_id=OTHER_CHAIN)
    conn = asyncio.run(build_guard(wallet).ensure_network())
    assert conn.chain_id == TARGET_CHAIN
    assert conn.account == wallet.account
    assert wallet.switch_calls == [TARGET_CHAIN]
    # the connection is built after the switch was confirmed
    assert wallet.calls.index("connect") > wallet.calls.index("switch_chain")
    assert wallet.listener_count == 0


def test_unknown_chain_is_added_then_switched():
    wallet = FakeWallet(chain_id=OTHER_CHAIN, known_chains={OTHER_CHAIN})
    conn = asyncio.run(build_guard(wallet).ensure_network())
    assert conn.chain_id == TARGET_CHAIN
    assert wallet.switch_calls == [TARGET_CHAIN, TARGET_CHAIN]
    assert len(wallet.add_calls) == 1
    params = wallet.add_calls[0]
    assert params["chainId"] == hex(TARGET_CHAIN)
    assert params["rpcUrls"] == ["http://rpc.test"]
    assert params["nativeCurrency"]["symbol"] == "MNT"


def test_rejected_switch_fails_without_retry():
    wallet = FakeWallet(chain_id=OTHER_CHAIN, reject_switch=True)
    with pytest.raises(UserRejected):
        asyncio.run(build_guard(wallet).ensure_network())
    assert wallet.switch_calls == [TARGET_CHAIN]
    assert wallet.add_calls == []


def test_rejected_account_access():
    wallet = FakeWallet(reject_accounts=True)
    with pytest.raises(UserRejected):
        asyncio.run(build_guard(wallet).ensure_network())


def test_missing_wallet():
    with pytest.raises(NoWalletProvider):
        asyncio.run(build_guard(None).ensure_network())


def test_switch_confirmed_by_polling_when_event_is_missed():
    wallet = FakeWallet(chain_id=OTHER_CHAIN, emit_event=False)
    conn = asyncio.run(build_guard(wallet).ensure_network())
    assert conn.chain_id == TARGET_CHAIN


def test_switch_that_never_lands_times_out_and_cleans_up():
    wallet = FakeWallet(chain_id=OTHER_CHAIN, switch_applies=False, emit_event=False)
    with pytest.raises(NetworkSwitchTimeout):
        asyncio.run(build_guard(wallet, switch_timeout=0.05).ensure_network())
    assert wallet.listener_count == 0


def test_other_switch_failure_is_network_mismatch():
    class BrokenWallet(FakeWallet):
        async def switch_chain(self, chain_id):
            from infrastructure.wallet import ProviderRpcError
            self.switch_calls.append(chain_id)
            raise ProviderRpcError(-32603, "Internal error")

    wallet = BrokenWallet(chain_id=OTHER_CHAIN)
    with pytest.raises(NetworkMismatch) as info:
        asyncio.run(build_guard(wallet).ensure_network())
    assert info.value.observed == OTHER_CHAIN
    assert info.value.expected == TARGET_CHAIN
    assert "Sepolia" in str(info.value)


def test_concurrent_callers_share_one_negotiation():
    wallet = FakeWallet(chain_id=OTHER_CHAIN)
    guard = build_guard(wallet)

    async def both():
        return await asyncio.gather(guard.ensure_network(), guard.ensure_network())

    first, second = asyncio.run(both())
    assert first.chain_id == second.chain_id == TARGET_CHAIN
    assert wallet.switch_calls == [TARGET_CHAIN]


def test_flaky_chain_id_reads_are_retried():
    class FlakyWallet(FakeWallet):
        failures = 2

        async def chain_id(self):
            if self.failures:
                self.failures -= 1
                raise ConnectionError("rpc hiccup")
            return await super().chain_id()

    wallet = FlakyWallet(chain_id=TARGET_CHAIN)
    conn = asyncio.run(build_guard(wallet).ensure_network())
    assert conn.chain_id == TARGET_CHAIN


def test_unauthorized_account_access_stays_in_client_errors():
    class LockedWallet(FakeWallet):
        async def request_accounts(self):
            raise ProviderRpcError(UNAUTHORIZED, "Unauthorized")

    wallet = LockedWallet(chain_id=TARGET_CHAIN)
    with pytest.raises(WalletUnauthorized):
        asyncio.run(build_guard(wallet).ensure_network())
    assert wallet.switch_calls == []


def test_other_account_errors_become_wallet_errors():
    class BrokenWallet(FakeWallet):
        async def request_accounts(self):
            raise ProviderRpcError(-32603, "Internal error")

    with pytest.raises(WalletError) as info:
        asyncio.run(build_guard(BrokenWallet()).ensure_network())
    assert "Internal error" in str(info.value)


def test_chain_id_unreadable_after_retries():
    class DeadRpcWallet(FakeWallet):
        reads = 0

        async def chain_id(self):
            self.reads += 1
            raise ConnectionError("rpc down")

    wallet = DeadRpcWallet()
    with pytest.raises(ArenaClientError) as info:
        asyncio.run(build_guard(wallet).ensure_network())
    assert isinstance(info.value, WalletError)
    assert wallet.reads == 3
