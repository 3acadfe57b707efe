import pytest
from fastapi.testclient import TestClient

import clients
import services
from clients.exceptions import GameNotFound, UserRejected
from infrastructure.wallet import ProviderRpcError, UNAUTHORIZED
from clients.game_writer import GameWriteClient
from clients.network_guard import NetworkGuard
from clients.token_ledger import TokenLedgerClient
from main import app
from models.domain_models import GameMode, GameStatus, Currency
from services.refresh_scheduler import RefreshScheduler
from fakes import CREATOR, PLAYER, FakeScheduler, FakeWallet, make_address_book


def record(game_id, status):
    return {
        "game_id": str(game_id),
        "name": f"Game #{game_id}",
        "mode": GameMode.QUICK_PLAY,
        "status": status,
        "currency": Currency.NATIVE,
        "entry_fee": "1.0",
        "total_prize_pool": "0.0",
        "yield_accumulated": "0.0",
        "max_players": 10,
        "min_players": 4,
        "player_count": 4,
        "current_player_count": 4,
        "current_round": 1 if status == GameStatus.IN_PROGRESS else 0,
        "player_list": [PLAYER] if status == GameStatus.IN_PROGRESS else [],
        "can_join": status in (GameStatus.WAITING, GameStatus.COUNTDOWN),
    }


class StubScheduler:
    viewer = None
    updated_at = 1_000.0
    last_error = None

    def __init__(self, games):
        self.games = games

    def cached_games(self):
        return list(self.games)

    def cached_game(self, game_id):
        return next((g for g in self.games if g["game_id"] == str(game_id)), None)


class StubReader:

    async def get_all_player_choices(self, game_id, players):
        return [
            {"address": p, "has_made_choice": True, "choice": 1, "eliminated": False, "round_eliminated": None}
            for p in players
        ]

    async def get_winnings_withdrawn(self, game_id):
        return game_id == "1"

    async def get_game(self, game_id, viewer=None):
        raise GameNotFound(f"Game {game_id} not found")

    async def get_creator_stake(self, address):
        return {
            "address": address,
            "staked_amount": "30.0",
            "yield_accumulated": "0.0",
            "timestamp": 1,
            "active_games_count": 2,
            "has_staked": True,
        }


class StubWriter:

    def __init__(self, active_games):
        self.active_games = active_games
        self.unstaked = False

    async def get_creator_stake(self, address=None):
        return {
            "address": CREATOR,
            "staked_amount": "30.0",
            "yield_accumulated": "0.0",
            "timestamp": 1,
            "active_games_count": self.active_games,
            "has_staked": True,
        }

    async def unstake_creator(self):
        self.unstaked = True
        return True


class RejectingGuard:
    async def ensure_network(self):
        raise UserRejected("Network switch to Mantle Sepolia was rejected.")


@pytest.fixture
def client():
    games = [
        record(3, GameStatus.IN_PROGRESS),
        record(2, GameStatus.WAITING),
        record(1, GameStatus.COMPLETED),
    ]
    app.dependency_overrides[services.get_refresh_scheduler] = lambda: StubScheduler(games)
    app.dependency_overrides[clients.get_game_reader] = lambda: StubReader()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_list_views(client):
    assert [g["game_id"] for g in client.get("/games").json()["games"]] == ["3", "2", "1"]
    assert [g["game_id"] for g in client.get("/games?view=featured").json()["games"]] == ["3"]
    assert [g["game_id"] for g in client.get("/games?view=active").json()["games"]] == ["3", "2"]
    assert client.get("/games?view=bogus").status_code == 400


def test_cached_game_and_missing_game(client):
    assert client.get("/games/2").json()["can_join"] is True
    missing = client.get("/games/99")
    assert missing.status_code == 404
    assert missing.json()["error"] == "GameNotFound"


def test_stake_view_reports_unstake_gate(client):
    body = client.get(f"/creator/stake/{CREATOR}").json()
    assert body["active_games_count"] == 2
    assert body["unstake_allowed"] is False


def test_unstake_blocked_while_games_are_active(client):
    writer = StubWriter(active_games=2)
    app.dependency_overrides[clients.get_game_writer] = lambda: writer
    response = client.post("/creator/unstake")
    assert response.status_code == 409
    assert response.json()["error"] == "UnstakeLocked"
    assert writer.unstaked is False


def test_unstake_allowed_once_games_finish(client):
    writer = StubWriter(active_games=0)
    app.dependency_overrides[clients.get_game_writer] = lambda: writer
    assert client.post("/creator/unstake").status_code == 200
    assert writer.unstaked is True


def test_invalid_create_is_400_without_wallet_interaction(client):
    wallet = FakeWallet()
    book = make_address_book()
    guard = NetworkGuard(wallet, book.network, settle_delay=0)
    writer = GameWriteClient(guard, TokenLedgerClient(guard, book), None, book)
    app.dependency_overrides[clients.get_game_writer] = lambda: writer
    response = client.post("/games", json={"currency": 0, "entry_fee": "0.0009", "max_players": 4})
    assert response.status_code == 400
    assert response.json()["error"] == "InvalidEntryFee"
    assert wallet.calls == []


def test_rejected_network_switch_is_403(client):
    app.dependency_overrides[clients.get_network_guard] = lambda: RejectingGuard()
    response = client.post("/wallet/network")
    assert response.status_code == 403
    assert response.json() == {"error": "UserRejected", "message": "Network switch to Mantle Sepolia was rejected."}


def test_stake_view_rejects_malformed_address(client):
    assert client.get("/creator/stake/not-an-address").status_code == 400


def test_current_round_choices(client):
    choices = client.get("/games/3/rounds/1/choices").json()
    assert choices == [
        {"address": PLAYER, "has_made_choice": True, "choice": 1, "eliminated": False, "round_eliminated": None}
    ]
    assert client.get("/games/3/rounds/2/choices").status_code == 409


def test_withdrawn_flag(client):
    assert client.get("/games/1/withdrawn").json() == {"game_id": "1", "withdrawn": True}
    assert client.get("/games/2/withdrawn").json()["withdrawn"] is False


def test_watch_lifecycle():
    jobs = FakeScheduler()
    scheduler = RefreshScheduler(StubReader(), scheduler=jobs)
    app.dependency_overrides[services.get_refresh_scheduler] = lambda: scheduler
    try:
        client = TestClient(app)
        created = client.post("/games/7/watch", json={"auto_advance": True})
        assert created.status_code == 201
        job_id = created.json()["job_id"]
        assert created.json()["game_id"] == "7"
        assert created.json()["auto_advance"] is True
        assert job_id in jobs.jobs

        assert client.get(f"/games/watches/{job_id}").json()["game"] is None
        assert client.delete(f"/games/watches/{job_id}").status_code == 204
        assert job_id not in jobs.jobs
        assert client.get(f"/games/watches/{job_id}").status_code == 404
    finally:
        app.dependency_overrides.clear()


def test_unauthorized_wallet_gets_error_body_not_500(client):
    class LockedWallet(FakeWallet):
        async def request_accounts(self):
            raise ProviderRpcError(UNAUTHORIZED, "Unauthorized")

    guard = NetworkGuard(LockedWallet(), make_address_book().network, settle_delay=0)
    app.dependency_overrides[clients.get_network_guard] = lambda: guard
    response = client.post("/wallet/network")
    assert response.status_code == 403
    assert response.json()["error"] == "WalletUnauthorized"


def test_watch_rejects_malformed_game_id(client):
    assert client.post("/games/abc/watch").status_code == 400
