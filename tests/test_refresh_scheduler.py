import asyncio

import pytest

from clients.exceptions import InvalidGameId
from models.domain_models import GameStatus
from services.refresh_scheduler import RefreshScheduler, LIST_JOB_ID
from fakes import FakeScheduler


class StubReader:

    def __init__(self):
        self.list_calls = 0
        self.game_calls = 0
        self.gate = None
        self.lists = []
        self.status = GameStatus.IN_PROGRESS
        self.countdown_deadline = None

    async def list_games(self, viewer=None):
        self.list_calls += 1
        result = self.lists.pop(0) if self.lists else []
        if self.gate is not None:
            await self.gate.wait()
        return result

    async def get_game(self, game_id, viewer=None):
        self.game_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        return {
            "game_id": str(game_id),
            "status": self.status,
            "current_round": 0,
            "currency": 0,
            "countdown_deadline": self.countdown_deadline,
            "is_player": False,
        }


class StubWriter:

    def __init__(self, reader):
        self.reader = reader
        self.started = []

    async def start_game_after_countdown(self, game_id):
        self.started.append(game_id)
        self.reader.status = GameStatus.IN_PROGRESS
        return True


def build(reader=None, **kwargs):
    reader = reader or StubReader()
    scheduler = RefreshScheduler(reader, scheduler=FakeScheduler(), clock=lambda: 1_000, **kwargs)
    return scheduler, reader


def test_concurrent_refreshes_collapse_into_one_fetch():
    scheduler, reader = build()
    reader.lists = [[{"game_id": "1"}]]

    async def run():
        reader.gate = asyncio.Event()
        first = asyncio.ensure_future(scheduler.refresh_games())
        second = asyncio.ensure_future(scheduler.refresh_games())
        await asyncio.sleep(0)
        reader.gate.set()
        return await asyncio.gather(first, second)

    first, second = asyncio.run(run())
    assert reader.list_calls == 1
    assert first == second == [{"game_id": "1"}]
    assert scheduler.cached_game("1") == {"game_id": "1"}



def test_forced_refresh_does_not_reuse_a_fetch_started_before_the_write():
    scheduler, reader = build()
    before_join = [{"game_id": "1", "is_player": False}]
    after_join = [{"game_id": "1", "is_player": True}]
    reader.lists = [before_join, after_join]

    async def run():
        reader.gate = asyncio.Event()
        scheduled = asyncio.ensure_future(scheduler.refresh_games())
        await asyncio.sleep(0)
        # the join confirms while the scheduled fetch is still waiting on the chain
        after_write = asyncio.ensure_future(scheduler.refresh_games(force=True))
        await asyncio.sleep(0)
        reader.gate.set()
        return await asyncio.gather(scheduled, after_write)

    scheduled, after_write = asyncio.run(run())
    assert reader.list_calls == 2
    assert scheduled == before_join
    assert after_write == after_join
    assert scheduler.cached_game("1")["is_player"] is True


def test_latest_completed_fetch_is_applied():
    scheduler, reader = build()
    reader.lists = [[{"game_id": "1"}], [{"game_id": "2"}, {"game_id": "1"}]]
    asyncio.run(scheduler.refresh_games())
    asyncio.run(scheduler.refresh_games())
    assert [g["game_id"] for g in scheduler.cached_games()] == ["2", "1"]
    assert scheduler.updated_at == 1_000


def test_failed_refresh_keeps_previous_list():
    class FailingReader(StubReader):
        async def list_games(self, viewer=None):
            raise ConnectionError("rpc down")

    scheduler, _ = build(FailingReader())
    scheduler.games = [{"game_id": "9"}]
    asyncio.run(scheduler._scheduled_list_refresh())
    assert scheduler.cached_games() == [{"game_id": "9"}]
    assert scheduler.last_error == "rpc down"


def test_start_registers_list_job():
    scheduler, _ = build()
    scheduler.start()
    func, trigger, kwargs = scheduler.scheduler.jobs[LIST_JOB_ID]
    assert trigger == "interval"
    assert kwargs["max_instances"] == 1
    assert scheduler.scheduler.running


def test_closed_watch_discards_in_flight_result():
    scheduler, reader = build()

    async def run():
        reader.gate = asyncio.Event()
        watch = scheduler.watch("7")
        pending = asyncio.ensure_future(watch.refresh())
        await asyncio.sleep(0)
        watch.close()
        reader.gate.set()
        return watch, await pending

    watch, result = asyncio.run(run())
    assert result is None
    assert watch.game is None
    assert watch.job_id not in scheduler.scheduler.jobs
    assert scheduler.watches() == []


def test_watch_applies_results_while_open():
    scheduler, reader = build()
    watch = scheduler.watch("7")
    assert watch.job_id in scheduler.scheduler.jobs
    game = asyncio.run(watch.refresh())
    assert game["game_id"] == "7"
    assert watch.snapshot()["game"] == game


def test_auto_advance_starts_elapsed_countdown_and_refetches():
    reader = StubReader()
    reader.status = GameStatus.COUNTDOWN
    reader.countdown_deadline = 990
    writer = StubWriter(reader)
    scheduler, _ = build(reader, writer=writer)
    watch = scheduler.watch("3", auto_advance=True)
    game = asyncio.run(watch.refresh())
    assert writer.started == ["3"]
    assert reader.game_calls == 2
    assert game["status"] == GameStatus.IN_PROGRESS


def test_shutdown_closes_watches():
    scheduler, _ = build()
    scheduler.start()
    watch = scheduler.watch("1")
    scheduler.shutdown()
    assert watch.cancelled
    assert not scheduler.scheduler.running


def test_watch_refuses_malformed_game_id():
    scheduler, _ = build()
    with pytest.raises(InvalidGameId):
        scheduler.watch("abc")
    assert scheduler.watches() == []
    assert scheduler.scheduler.jobs == {}
