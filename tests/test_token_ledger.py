import asyncio

import pytest

from clients.exceptions import ApprovalFailed, ApprovalRejected, ContractNotDeployed
from clients.network_guard import NetworkGuard
from clients.token_ledger import TokenLedgerClient
from infrastructure.retry import RetryPolicy
from models.domain_models import Currency
from utils.units import MAX_UINT256
from fakes import GAME_MANAGER_ADDRESS, PLAYER, USDT0_ADDRESS, FakeContract, FakeWallet, make_address_book


def build_ledger(wallet=None, *, code=b"\x60\x80"):
    wallet = wallet or FakeWallet()
    book = make_address_book()
    guard = NetworkGuard(wallet, book.network, settle_delay=0, chain_id_retry=RetryPolicy(base_delay=0))
    ledger = TokenLedgerClient(guard, book, read_retry=RetryPolicy(max_attempts=2, base_delay=0))
    ledger.code_check_retry.base_delay = 0
    eth = wallet.w3.eth
    if code is not None:
        eth.codes[USDT0_ADDRESS] = code
    token = eth.add_contract(FakeContract(USDT0_ADDRESS, {
        "balanceOf": lambda owner: 12_500_000,
        "allowance": lambda owner, spender: 0,
    }))
    return ledger, wallet, token


def test_native_approval_is_a_no_op():
    ledger, wallet, _ = build_ledger()
    assert asyncio.run(ledger.ensure_approval(Currency.NATIVE, "5")) is True
    assert asyncio.run(ledger.ensure_approval(Currency.NATIVE, "5")) is True
    assert wallet.calls == []


def test_token_approval_sends_max_amount_to_game_manager():
    ledger, wallet, _ = build_ledger()
    assert asyncio.run(ledger.ensure_approval(Currency.STABLE_YIELD, "10")) is True
    assert wallet.sent_fns() == ["approve"]
    spender, amount = wallet.sent[0]["args"]
    assert spender.lower() == GAME_MANAGER_ADDRESS
    assert amount == MAX_UINT256
    assert wallet.sent[0]["from"] == PLAYER


def test_missing_token_code_fails_after_retries():
    ledger, wallet, _ = build_ledger(code=None)
    with pytest.raises(ContractNotDeployed):
        asyncio.run(ledger.ensure_approval(Currency.STABLE_YIELD, "10"))
    assert wallet.w3.eth.code_checks == 5
    assert wallet.sent == []


def test_code_check_survives_transient_empty_reads():
    ledger, wallet, _ = build_ledger(code=lambda attempt: b"" if attempt < 3 else b"\x60\x80")
    assert asyncio.run(ledger.ensure_approval(Currency.STABLE_YIELD, "10")) is True
    assert wallet.w3.eth.code_checks == 3


def test_rejected_approval():
    ledger, wallet, _ = build_ledger(FakeWallet(reject_signing=True))
    with pytest.raises(ApprovalRejected) as info:
        asyncio.run(ledger.ensure_approval(Currency.STABLE_YIELD, "10"))
    assert "USDT0" in str(info.value)


def test_reverted_approval():
    ledger, wallet, _ = build_ledger()
    wallet.w3.eth.receipts["approve"] = {"status": 0, "blockNumber": 9, "logs": []}
    with pytest.raises(ApprovalFailed):
        asyncio.run(ledger.ensure_approval(Currency.STABLE_YIELD, "10"))


def test_balance_uses_currency_precision():
    ledger, wallet, _ = build_ledger()
    wallet.w3.eth.balances[PLAYER] = 2 * 10**18
    assert asyncio.run(ledger.get_balance(Currency.STABLE_YIELD)) == "12.5"
    assert asyncio.run(ledger.get_balance(Currency.NATIVE)) == "2.0"


def test_allowance_check_skips_redundant_approval():
    ledger, wallet, token = build_ledger()
    token.reads["allowance"] = lambda owner, spender: 50_000_000
    assert asyncio.run(ledger.ensure_allowance(Currency.STABLE_YIELD, 10_000_000)) is False
    assert wallet.sent == []

    token.reads["allowance"] = lambda owner, spender: 1
    assert asyncio.run(ledger.ensure_allowance(Currency.STABLE_YIELD, 10_000_000)) is True
    assert wallet.sent_fns() == ["approve"]


def test_concurrent_approvals_for_same_pair_are_serialized():
    ledger, wallet, _ = build_ledger()
    active = 0
    peak = 0
    original = wallet.send_transaction

    async def slow_send(w3, tx):
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        return await original(w3, tx)

    wallet.send_transaction = slow_send

    async def both():
        await asyncio.gather(
            ledger.ensure_approval(Currency.STABLE_YIELD, "1"),
            ledger.ensure_approval(Currency.STABLE_YIELD, "2"),
        )

    asyncio.run(both())
    assert peak == 1
    assert wallet.sent_fns() == ["approve", "approve"]
