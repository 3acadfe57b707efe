# refresh_scheduler.py
import asyncio
import logging
import time
import uuid
from datetime import datetime
from typing import Callable, Optional

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from pytz import utc

from clients.exceptions import ArenaClientError, InvalidGameId, LookupFailed
from clients.game_reader import GameReadClient
from clients.game_writer import GameWriteClient
from models.domain_models import GameRecord, GameStatus, PlayerInfo, RoundInfo
from utils.time import seconds_until
from utils.validation import is_valid_game_id

logger = logging.getLogger(__name__)

LIST_JOB_ID = "refresh-game-list"


class GameWatch:
    """One observer's subscription to a single game.

    Owns its interval job and its cancelled flag. After close(), results of a
    fetch that was already in flight are dropped instead of applied.
    """

    def __init__(
        self,
        owner: "RefreshScheduler",
        game_id: str,
        *,
        viewer: Optional[str] = None,
        auto_advance: bool = False,
    ):
        self.owner = owner
        self.game_id = str(game_id)
        self.viewer = viewer
        self.auto_advance = auto_advance
        self.job_id = f"watch-{self.game_id}-{uuid.uuid4().hex[:8]}"
        self.cancelled = False
        self.game: Optional[GameRecord] = None
        self.round: Optional[RoundInfo] = None
        self.player: Optional[PlayerInfo] = None
        self.last_error: Optional[str] = None
        self.updated_at: Optional[float] = None
        self._task: Optional[asyncio.Future] = None

    async def refresh(self) -> Optional[GameRecord]:
        """Fetch game, round and player state; joins a fetch already in flight."""
        if self.cancelled:
            return None
        if self._task is None or self._task.done():
            self._task = asyncio.ensure_future(self._cycle())
        return await asyncio.shield(self._task)

    async def _cycle(self) -> Optional[GameRecord]:
        applied = await self._fetch_and_apply()
        if applied is None or not self._countdown_elapsed(applied):
            return applied

        logger.info(f"[SCHED] Countdown for game {self.game_id} elapsed; advancing")
        try:
            await self.owner.writer.start_game_after_countdown(self.game_id)
        except ArenaClientError as exc:
            logger.warning(f"[SCHED] Auto-advance of game {self.game_id} failed: {exc}")
        # re-read whatever the outcome
        return await self._fetch_and_apply()

    async def _fetch_and_apply(self) -> Optional[GameRecord]:
        reader = self.owner.reader
        try:
            game = await reader.get_game(self.game_id, viewer=self.viewer)
            round_info = None
            if game["status"] == GameStatus.IN_PROGRESS and game.get("current_round"):
                try:
                    round_info = await reader.get_round_info(self.game_id, game["current_round"])
                except LookupFailed as exc:
                    logger.debug(f"[SCHED] No round data for game {self.game_id}: {exc}")
            player = None
            if self.viewer and game.get("is_player"):
                try:
                    player = await reader.get_player_info(self.game_id, self.viewer, game["currency"])
                except LookupFailed as exc:
                    logger.debug(f"[SCHED] No player data for {self.viewer} in game {self.game_id}: {exc}")
        except Exception as exc:
            if not self.cancelled:
                self.last_error = str(exc)
                logger.warning(f"[SCHED] Watch refresh for game {self.game_id} failed: {exc}")
            return None

        if self.cancelled:
            logger.debug(f"[SCHED] Discarding result for closed watch {self.job_id}")
            return None
        self.game, self.round, self.player = game, round_info, player
        self.last_error = None
        self.updated_at = self.owner.clock()
        return game

    def _countdown_elapsed(self, game: GameRecord) -> bool:
        if not self.auto_advance or self.owner.writer is None:
            return False
        deadline = game.get("countdown_deadline")
        return game["status"] == GameStatus.COUNTDOWN and seconds_until(deadline, self.owner.clock()) == 0

    def close(self) -> None:
        self.cancelled = True
        self.owner._remove_watch(self)

    def snapshot(self) -> dict:
        return {
            "job_id": self.job_id,
            "game_id": self.game_id,
            "auto_advance": self.auto_advance,
            "game": self.game,
            "round": self.round,
            "player": self.player,
            "updated_at": self.updated_at,
            "last_error": self.last_error,
        }


class RefreshScheduler:
    """
    Keeps the game list, and any watched games, current.

    Invariants:
    - at most one list fetch is in flight; concurrent triggers share it
    - a forced refresh only shares a fetch that started after it was requested
    - results are applied in completion order, the last completed fetch wins
    - a closed watch never applies state
    """

    def __init__(
        self,
        reader: GameReadClient,
        *,
        writer: Optional[GameWriteClient] = None,
        scheduler: Optional[AsyncIOScheduler] = None,
        list_interval: float = 10.0,
        watch_interval: float = 5.0,
        viewer: Optional[str] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.reader = reader
        self.writer = writer
        self.scheduler = scheduler or AsyncIOScheduler(timezone=utc)
        self.list_interval = list_interval
        self.watch_interval = watch_interval
        self.viewer = viewer
        self.clock = clock
        self.games: list[GameRecord] = []
        self.updated_at: Optional[float] = None
        self.last_error: Optional[str] = None
        self._list_task: Optional[asyncio.Future] = None
        self._watches: dict[str, GameWatch] = {}
        self._stopped = False

    # -------------------------------------------------
    # Lifecycle
    # -------------------------------------------------

    def start(self) -> None:
        self._stopped = False
        self.scheduler.add_job(
            self._scheduled_list_refresh,
            trigger="interval",
            seconds=self.list_interval,
            id=LIST_JOB_ID,
            replace_existing=True,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(utc),
        )
        if not self.scheduler.running:
            self.scheduler.start()
        logger.info(f"[SCHED] Game list refresh every {self.list_interval:g}s")

    def shutdown(self) -> None:
        self._stopped = True
        for watch in list(self._watches.values()):
            watch.close()
        if self.scheduler.running:
            self.scheduler.shutdown(wait=False)
        if self._list_task is not None and not self._list_task.done():
            self._list_task.cancel()
        logger.info("[SCHED] Stopped")

    # -------------------------------------------------
    # Game list
    # -------------------------------------------------

    def cached_games(self) -> list[GameRecord]:
        return list(self.games)

    def cached_game(self, game_id) -> Optional[GameRecord]:
        for game in self.games:
            if game.get("game_id") == str(game_id):
                return game
        return None

    async def refresh_games(self, force: bool = False) -> list[GameRecord]:
        """Refresh the list now, or join the refresh already in flight.

        With `force`, a fetch that started before this call is not reused: it is
        left to settle and a new fetch starts after it, so state written just
        before the call is always observed.
        """
        if force and self._list_task is not None and not self._list_task.done():
            await asyncio.wait({self._list_task})
        if self._list_task is None or self._list_task.done():
            self._list_task = asyncio.ensure_future(self._fetch_games())
        return await asyncio.shield(self._list_task)

    async def _fetch_games(self) -> list[GameRecord]:
        try:
            games = await self.reader.list_games(self.viewer)
        except Exception as exc:
            self.last_error = str(exc)
            raise
        if self._stopped:
            logger.debug("[SCHED] Scheduler stopped; discarding game list")
            return self.cached_games()
        self.games = games
        self.updated_at = self.clock()
        self.last_error = None
        return list(games)

    async def _scheduled_list_refresh(self) -> None:
        try:
            await self.refresh_games()
        except Exception as exc:
            logger.warning(f"[SCHED] Scheduled game list refresh failed: {exc}")

    # -------------------------------------------------
    # Watches
    # -------------------------------------------------

    def watch(self, game_id, *, viewer: Optional[str] = None, auto_advance: bool = False) -> GameWatch:
        if not is_valid_game_id(game_id):
            raise InvalidGameId(f"Invalid game id: {game_id!r}")
        game_id = str(game_id).strip()
        watch = GameWatch(self, game_id, viewer=viewer or self.viewer, auto_advance=auto_advance)
        self._watches[watch.job_id] = watch
        self.scheduler.add_job(
            watch.refresh,
            trigger="interval",
            seconds=self.watch_interval,
            id=watch.job_id,
            max_instances=1,
            coalesce=True,
            next_run_time=datetime.now(utc),
        )
        logger.info(f"[SCHED] Watching game {watch.game_id} ({watch.job_id})")
        return watch

    def watches(self) -> list[GameWatch]:
        return list(self._watches.values())

    def find_watch(self, job_id: str) -> Optional[GameWatch]:
        return self._watches.get(job_id)

    def _remove_watch(self, watch: GameWatch) -> None:
        if self._watches.pop(watch.job_id, None) is None:
            return
        try:
            self.scheduler.remove_job(watch.job_id)
        except JobLookupError:
            logger.debug(f"[SCHED] Job {watch.job_id} already gone")
        logger.info(f"[SCHED] Stopped watching game {watch.game_id}")
