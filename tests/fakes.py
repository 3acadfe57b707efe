"""In-memory doubles for the wallet, the AsyncWeb3 handle and contracts."""
import asyncio
import inspect

from web3.exceptions import MismatchedABI

from infrastructure.address_book import ChainAddressBook, NetworkParams, GAME_MANAGER, YIELD_VAULT
from infrastructure.wallet import ProviderRpcError, WalletProvider, USER_REJECTED, UNRECOGNIZED_CHAIN

TARGET_CHAIN = 5003
OTHER_CHAIN = 11155111

GAME_MANAGER_ADDRESS = "0x" + "a1" * 20
USDT0_ADDRESS = "0x" + "b2" * 20
METH_ADDRESS = "0x" + "c3" * 20
VAULT_ADDRESS = "0x" + "d4" * 20
PLAYER = "0x" + "11" * 20
CREATOR = "0x" + "22" * 20
OTHER = "0x" + "33" * 20
ZERO = "0x" + "00" * 20


def make_address_book():
    network = NetworkParams(
        chain_id=TARGET_CHAIN,
        name="Mantle Sepolia",
        rpc_url="http://rpc.test",
        explorer_url="http://explorer.test",
    )
    return ChainAddressBook(network=network, addresses={
        GAME_MANAGER: GAME_MANAGER_ADDRESS,
        YIELD_VAULT: VAULT_ADDRESS,
        "USDT0": USDT0_ADDRESS,
        "METH": METH_ADDRESS,
    })


def make_game(game_id, *, status=0, currency=0, entry_fee=10**18, max_players=10, players=(),
              current_round=0, winner=ZERO, name="", named=False):
    values = [
        game_id, 0, status, currency, entry_fee, max_players, current_round,
        winner, 0, 0, len(players), name,
    ]
    if not named:
        return tuple(values)
    keys = ["gameId_", "mode", "status", "currency", "entryFee", "maxPlayers", "currentRound",
            "winner", "totalPrizePool", "yieldAccumulated", "playerCount", "gameName"]
    return dict(zip(keys, values))


# -------------------------------------------------
# Contracts
# -------------------------------------------------

class FakeCall:

    def __init__(self, contract, name, args):
        self.contract = contract
        self.name = name
        self.args = args

    async def call(self, tx=None):
        self.contract.calls.append((self.name, self.args))
        handler = self.contract.reads.get(self.name)
        if handler is None:
            raise ValueError(f"execution reverted: no handler for {self.name}")
        result = handler(*self.args) if callable(handler) else handler
        if inspect.isawaitable(result):
            result = await result
        if isinstance(result, BaseException):
            raise result
        return result

    async def build_transaction(self, params):
        failure = self.contract.failures.get(self.name)
        if failure is not None:
            raise failure
        tx = {"to": self.contract.address, "fn": self.name, "args": self.args}
        tx.update(params)
        return tx


class _Functions:

    def __init__(self, contract):
        self._contract = contract

    def __getattr__(self, name):
        return lambda *args: FakeCall(self._contract, name, args)


class FakeEvent:

    def __init__(self, name):
        self.name = name

    def process_log(self, log):
        if log.get("event") != self.name:
            raise MismatchedABI(f"log is not a {self.name} event")
        return {"event": self.name, "args": log["args"]}


class _Events:

    def __getattr__(self, name):
        return lambda: FakeEvent(name)


class FakeContract:
    """`reads` maps function name to a value or callable(*args); `failures`
    maps a write name to the exception its build_transaction raises."""

    def __init__(self, address, reads=None, failures=None):
        self.address = address
        self.reads = dict(reads or {})
        self.failures = dict(failures or {})
        self.calls = []
        self.functions = _Functions(self)
        self.events = _Events()

    def calls_to(self, name):
        return [args for fn, args in self.calls if fn == name]


# -------------------------------------------------
# AsyncWeb3-shaped handle
# -------------------------------------------------

class FakeEth:

    def __init__(self):
        self.contracts = {}
        self.codes = {}
        self.balances = {}
        self.block_timestamp = 1_700_000_000
        # receipts per write name; default is a successful receipt without logs
        self.receipts = {}
        self.pending = {}
        self.code_checks = 0

    def add_contract(self, contract):
        self.contracts[contract.address.lower()] = contract
        return contract

    def contract(self, address, abi=None):
        key = address.lower()
        if key not in self.contracts:
            self.contracts[key] = FakeContract(key)
        return self.contracts[key]

    async def get_block(self, block_identifier):
        return {"timestamp": self.block_timestamp, "number": 1}

    async def get_balance(self, address):
        return self.balances.get(address.lower(), 0)

    async def get_code(self, address):
        self.code_checks += 1
        code = self.codes.get(address.lower(), b"")
        return code(self.code_checks) if callable(code) else code

    async def wait_for_transaction_receipt(self, tx_hash, timeout=120):
        tx = self.pending[tx_hash]
        receipt = self.receipts.get(tx["fn"], {"status": 1, "blockNumber": 7, "logs": []})
        if isinstance(receipt, BaseException):
            raise receipt
        return receipt


class FakeWeb3:

    def __init__(self):
        self.eth = FakeEth()


# -------------------------------------------------
# Wallet
# -------------------------------------------------

class FakeWallet(WalletProvider):
    """Scriptable wallet provider. Every interaction is appended to `calls`."""

    def __init__(self, account=PLAYER, chain_id=TARGET_CHAIN, *, known_chains=None, w3=None,
                 reject_accounts=False, reject_switch=False, switch_applies=True, emit_event=True,
                 reject_signing=False):
        self.account = account
        self._chain_id = chain_id
        self.known_chains = set(known_chains if known_chains is not None else {TARGET_CHAIN, chain_id})
        self.w3 = w3 or FakeWeb3()
        self.reject_accounts = reject_accounts
        self.reject_switch = reject_switch
        self.switch_applies = switch_applies
        self.emit_event = emit_event
        self.reject_signing = reject_signing
        self.calls = []
        self.switch_calls = []
        self.add_calls = []
        self.sent = []
        self.connects = 0
        self._listeners = []

    async def request_accounts(self):
        self.calls.append("request_accounts")
        if self.reject_accounts:
            raise ProviderRpcError(USER_REJECTED, "User rejected the request.")
        return [self.account]

    async def chain_id(self):
        self.calls.append("chain_id")
        return self._chain_id

    async def switch_chain(self, chain_id):
        self.calls.append("switch_chain")
        self.switch_calls.append(chain_id)
        if self.reject_switch:
            raise ProviderRpcError(USER_REJECTED, "User rejected the request.")
        if chain_id not in self.known_chains:
            raise ProviderRpcError(UNRECOGNIZED_CHAIN, f"Unrecognized chain ID {chain_id}")
        if not self.switch_applies:
            return
        self._chain_id = chain_id
        if self.emit_event:
            # browser wallets deliver the change after the request resolves
            asyncio.get_running_loop().call_soon(self._notify, hex(chain_id))

    def _notify(self, chain_id_hex):
        for callback in list(self._listeners):
            callback(chain_id_hex)

    async def add_chain(self, params):
        self.calls.append("add_chain")
        self.add_calls.append(params)
        self.known_chains.add(int(params["chainId"], 16))

    def on_chain_changed(self, callback):
        self._listeners.append(callback)

    def remove_chain_changed(self, callback):
        self._listeners.remove(callback)

    @property
    def listener_count(self):
        return len(self._listeners)

    def connect(self):
        self.calls.append("connect")
        self.connects += 1
        return self.w3

    async def send_transaction(self, w3, tx):
        self.calls.append("send_transaction")
        if self.reject_signing:
            raise ProviderRpcError(USER_REJECTED, "User denied transaction signature.")
        self.sent.append(tx)
        tx_hash = len(self.sent).to_bytes(32, "big")
        w3.eth.pending[tx_hash] = tx
        return tx_hash

    def sent_fns(self):
        return [tx["fn"] for tx in self.sent]


class FakeScheduler:
    """APScheduler stand-in that records jobs instead of running them."""

    def __init__(self):
        self.jobs = {}
        self.running = False

    def add_job(self, func, trigger=None, id=None, **kwargs):
        self.jobs[id] = (func, trigger, kwargs)

    def remove_job(self, job_id):
        del self.jobs[job_id]

    def start(self):
        self.running = True

    def shutdown(self, wait=True):
        self.running = False
