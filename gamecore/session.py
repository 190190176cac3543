"""Attempt session orchestration for a single puzzle board."""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Coroutine
from uuid import uuid4

from .achievements import Achievement, AchievementCoordinator, AchievementQueue
from .attempts import AttemptClient, PuzzleLayout
from .clock import SessionClock
from .errors import BoardLayoutError, PuzzleError, SessionConfigurationError
from .events import EventType, SessionEvent, write_jsonl
from .game import PuzzleGame
from .move import Move
from .result import AttemptReport, SessionResult

logger = logging.getLogger(__name__)


class SessionPhase(str, Enum):
    """Lifecycle of one board inside a session."""

    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    FINALIZING = "finalizing"
    FINALIZED = "finalized"


@dataclass
class SessionGuard:
    """Allow exactly one finalize per game id."""

    has_finalized: bool = False
    last_finalized_game_id: str | None = None

    def should_finalize(self, game_id: str) -> bool:
        return not self.has_finalized and self.last_finalized_game_id != game_id

    def mark_finalized(self, game_id: str) -> None:
        self.has_finalized = True
        self.last_finalized_game_id = game_id

    def reset(self) -> None:
        """Re-arm for the next board; the last finalized id is kept."""
        self.has_finalized = False


@dataclass(frozen=True)
class SessionConfig:
    """Tunables for remote coordination and session logging."""

    attempt_start_timeout_sec: float = 10.0
    create_puzzle_timeout_sec: float = 10.0
    use_remote_puzzles: bool = True
    event_log_dir: str | None = None

    def __post_init__(self) -> None:
        if self.attempt_start_timeout_sec <= 0:
            raise SessionConfigurationError("attempt_start_timeout_sec must be positive.")
        if self.create_puzzle_timeout_sec <= 0:
            raise SessionConfigurationError("create_puzzle_timeout_sec must be positive.")


def _client_date() -> str:
    return datetime.now(timezone.utc).isoformat()


class PuzzleSession:
    """Drive one puzzle game through boards, attempts and achievements.

    Board mutation, completion detection and scoring happen synchronously in
    ``apply_move``. Remote calls run as detached tasks; gameplay never waits
    on them. Every asynchronous result is tagged with the ``game_id`` that
    produced it and dropped once a reset has issued a new one.
    """

    def __init__(
        self,
        game: PuzzleGame[Any, Any],
        *,
        client: AttemptClient | None = None,
        config: SessionConfig | None = None,
        clock_factory: Callable[[], SessionClock] = SessionClock,
        session_id: str | None = None,
    ):
        self.session_id = session_id or f"session-{uuid4().hex[:10]}"
        self.game = game
        self.client = client
        self.config = config or SessionConfig()
        self.clock = clock_factory()
        self.guard = SessionGuard()
        self.achievements = AchievementQueue()
        self.coordinator = AchievementCoordinator(client) if client is not None else None
        self.events: list[SessionEvent] = []

        self.game_id = uuid4().hex
        self.seed: int | None = None
        self.state: Any = None
        self.puzzle_id: str | None = None
        self.attempt_id: str | None = None
        self.started_at: datetime | None = None
        self.phase = SessionPhase.NOT_STARTED
        self.is_loading = True
        self.is_complete = False
        self.completed_successfully = False
        self.score: int | None = None
        self.result: SessionResult | None = None
        self.achievements_unlocked: list[Achievement] = []
        self.abandoned = False

        self._settle_handle: asyncio.TimerHandle | None = None
        self._start_task: asyncio.Task[str | None] | None = None
        self._finalize_task: asyncio.Task[None] | None = None
        self._tasks: set[asyncio.Task[Any]] = set()

    @property
    def move_count(self) -> int:
        if self.state is None:
            return 0
        return self.game.move_count(self.state)

    async def reset(self, seed: int | None = None) -> None:
        """Discard the current board and load a fresh one."""
        # Everything up to the first await runs before any stale callback can.
        self.guard.reset()
        self.game_id = uuid4().hex
        self._cancel_settle()
        self.clock.stop()
        self.clock.reset()
        self.achievements.clear()
        self.seed = seed if seed is not None else random.randrange(1 << 31)
        self.state = None
        self.puzzle_id = None
        self.attempt_id = None
        self.started_at = None
        self.phase = SessionPhase.NOT_STARTED
        self.is_loading = True
        self.is_complete = False
        self.completed_successfully = False
        self.score = None
        self.result = None
        self.achievements_unlocked = []
        self.abandoned = False
        self._start_task = None
        self._finalize_task = None

        game_id = self.game_id
        state, puzzle_id = await self._load_board(game_id, self.seed)
        if game_id != self.game_id:
            logger.debug("Board for game %s arrived after another reset; dropped", game_id)
            return

        self.state = state
        self.puzzle_id = puzzle_id
        self.is_loading = False
        self._record(
            EventType.SESSION_START,
            {
                "game": self.game.game_name,
                "seed": self.seed,
                "puzzle_id": puzzle_id,
                "config": self.game.default_config,
                "state_digest": state.state_digest(),
            },
        )
        logger.info("Started %s game %s (puzzle %s)", self.game.game_name, game_id, puzzle_id or "local")

    def apply_move(self, move: Move) -> bool:
        """Apply a player move; illegal moves are silent no-ops returning False."""
        if self.state is None or self.is_complete or self.abandoned:
            return False

        legal, reason = self.game.is_legal(self.state, move)
        if not legal:
            logger.debug("Ignored %s in game %s: %s", move.move_type, self.game_id, reason)
            self._record(EventType.ILLEGAL_MOVE, {"move": move.to_dict(), "reason": reason})
            return False

        self.state = self.game.apply_move(self.state, move)
        if move.counts_as_play and self.phase is SessionPhase.NOT_STARTED:
            self._begin_attempt()
        self._record(EventType.MOVE, {"move": move.to_dict()})

        self._schedule_settle()
        self._check_completion()
        return True

    def quit(self) -> None:
        """Leave the board: stop the clock and drop pending resolutions."""
        self._cancel_settle()
        self.clock.stop()
        if not self.is_complete:
            self.abandoned = True
        logger.info("Quit %s game %s", self.game.game_name, self.game_id)

    def acknowledge_achievement(self, achievement_id: str | None = None) -> Achievement | None:
        return self.achievements.acknowledge(achievement_id)

    async def wait_finalized(self) -> SessionResult | None:
        """Wait for the current board's remote reporting to finish."""
        task = self._finalize_task
        if task is not None:
            await task
        return self.result

    async def aclose(self) -> None:
        """Cancel every detached task and pending callback."""
        self._cancel_settle()
        self.clock.stop()
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    def view(self) -> dict[str, Any]:
        """Return the presentation-facing snapshot of the session."""
        active = self.achievements.active
        return {
            "session_id": self.session_id,
            "game": self.game.game_name,
            "game_id": self.game_id,
            "board": None if self.state is None else self.game.snapshot(self.state),
            "move_count": self.move_count,
            "elapsed_seconds": self.clock.elapsed_seconds(),
            "is_complete": self.is_complete,
            "completed_successfully": self.completed_successfully,
            "is_loading": self.is_loading,
            "score": self.score,
            "phase": self.phase.value,
            "achievements_unlocked": [achievement.to_dict() for achievement in self.achievements_unlocked],
            "active_achievement": None if active is None else active.to_dict(),
        }

    def events_for(self, game_id: str | None = None) -> list[SessionEvent]:
        target = game_id or self.game_id
        return [event for event in self.events if event.game_id == target]

    async def _load_board(self, game_id: str, seed: int) -> tuple[Any, str | None]:
        """Ask the remote service for a board and fall back to a local one."""
        puzzle_id: str | None = None
        params = self.game.puzzle_params()
        if self.client is not None and params is None:
            logger.info("No remote %s puzzle fits this board; playing locally", self.game.game_name)
        elif self.client is not None:
            try:
                created: PuzzleLayout = await asyncio.wait_for(
                    self.client.create_puzzle(self.game.game_name, self.game.layout_key, params),
                    timeout=self.config.create_puzzle_timeout_sec,
                )
            except (PuzzleError, asyncio.TimeoutError) as exc:
                logger.warning("Could not create a remote %s puzzle, playing locally: %s", self.game.game_name, exc)
                self._record(EventType.REMOTE_ERROR, {"operation": "create_puzzle", "error": str(exc)}, game_id=game_id)
            else:
                puzzle_id = created.puzzle_id
                if self.config.use_remote_puzzles:
                    try:
                        return self.game.from_layout(created.layout), puzzle_id
                    except BoardLayoutError as exc:
                        logger.warning("Remote layout rejected, generating locally: %s", exc)
                        self._record(EventType.REMOTE_ERROR, exc.to_dict(), game_id=game_id)
        return self.game.new_game(seed), puzzle_id

    def _begin_attempt(self) -> None:
        self.phase = SessionPhase.IN_PROGRESS
        self.started_at = datetime.now(timezone.utc)
        self.clock.start()
        if self.client is None or self.puzzle_id is None:
            return
        self._start_task = self._spawn(self._start_attempt(self.game_id, self.puzzle_id))

    async def _start_attempt(self, game_id: str, puzzle_id: str) -> str | None:
        assert self.client is not None
        try:
            attempt_id = await self.client.start_attempt(puzzle_id, self.game.remote_game_type)
        except PuzzleError as exc:
            logger.warning("Starting attempt for game %s failed, continuing locally: %s", game_id, exc)
            self._record(EventType.REMOTE_ERROR, {"operation": "start_attempt", "error": str(exc)}, game_id=game_id)
            return None

        logger.info("Attempt %s started for game %s", attempt_id, game_id)
        self._record(EventType.ATTEMPT_STARTED, {"attempt_id": attempt_id}, game_id=game_id)
        if game_id == self.game_id:
            self.attempt_id = attempt_id
        return attempt_id

    def _schedule_settle(self) -> None:
        if self._settle_handle is not None:
            return
        delay = self.game.settle_delay(self.state)
        if delay is None:
            return
        loop = asyncio.get_running_loop()
        self._settle_handle = loop.call_later(delay, self._run_settle, self.game_id)

    def _run_settle(self, game_id: str) -> None:
        if game_id != self.game_id or self.state is None:
            logger.debug("Dropped stale settle for game %s", game_id)
            return
        self._settle_handle = None
        before = self.state
        self.state = self.game.settle(self.state)
        if self.state is not before:
            self._record(EventType.SETTLE, {"state_digest": self.state.state_digest()})
        self._schedule_settle()
        self._check_completion()

    def _cancel_settle(self) -> None:
        if self._settle_handle is not None:
            self._settle_handle.cancel()
            self._settle_handle = None

    def _check_completion(self) -> None:
        if self.state is None or not self.game.is_terminal(self.state):
            return
        if not self.guard.should_finalize(self.game_id):
            return
        self.guard.mark_finalized(self.game_id)
        self._finalize()

    def _finalize(self) -> None:
        outcome = self.game.outcome(self.state)
        self.clock.stop()
        moves = self.game.move_count(self.state)
        self.is_complete = True
        self.completed_successfully = outcome.success
        self.score = self.game.score(self.clock.elapsed_seconds(), moves) if outcome.success else None
        self.phase = SessionPhase.FINALIZING

        self.result = SessionResult(
            game_id=self.game_id,
            game_name=self.game.game_name,
            success=outcome.success,
            termination_reason=outcome.termination_reason,
            move_count=moves,
            duration_ms=self.clock.elapsed_ms(),
            score=self.score,
            attempt_id=self.attempt_id,
            stats=outcome.stats,
            final_state_digest=self.state.state_digest(),
        )
        self._record(EventType.TERMINAL, {"result": self.result.to_dict()})
        logger.info(
            "Game %s finished: success=%s moves=%s score=%s",
            self.game_id,
            outcome.success,
            moves,
            self.score,
        )
        self._finalize_task = self._spawn(self._report(self.game_id, self.result, self._start_task))

    async def _report(self, game_id: str, result: SessionResult, start_task: asyncio.Task[str | None] | None) -> None:
        """Finish the remote attempt, then collect achievements."""
        attempt_id: str | None = None
        if start_task is not None:
            try:
                attempt_id = await asyncio.wait_for(
                    asyncio.shield(start_task),
                    timeout=self.config.attempt_start_timeout_sec,
                )
            except asyncio.TimeoutError:
                logger.warning("Attempt for game %s never started; result kept local", game_id)
                self._record(EventType.REMOTE_ERROR, {"operation": "start_attempt", "error": "timeout"}, game_id=game_id)

        achievements: list[Achievement] = []
        if attempt_id is not None and self.client is not None and self.coordinator is not None:
            report = AttemptReport(
                success=result.success,
                moves=result.move_count,
                duration_ms=result.duration_ms,
                score=result.score,
                client_date=_client_date(),
            )
            try:
                await self.client.finish_attempt(attempt_id, report)
            except PuzzleError as exc:
                logger.warning("Finishing attempt %s failed: %s", attempt_id, exc)
                self._record(EventType.REMOTE_ERROR, {"operation": "finish_attempt", "error": str(exc)}, game_id=game_id)
            else:
                logger.info("Attempt %s finished", attempt_id)
                self._record(EventType.ATTEMPT_FINISHED, {"attempt_id": attempt_id, "report": report.to_payload()}, game_id=game_id)
                achievements = await self.coordinator.check(attempt_id)

        if game_id != self.game_id:
            logger.info("Game %s was reset before reporting finished; results discarded", game_id)
            return

        self.attempt_id = attempt_id
        self.result = replace(result, attempt_id=attempt_id)
        if achievements:
            added = self.achievements.extend(achievements)
            self.achievements_unlocked.extend(added)
            self._record(EventType.ACHIEVEMENTS, {"achievements": [a.to_dict() for a in added]})
        self.phase = SessionPhase.FINALIZED
        self._write_event_log(game_id)

    def _write_event_log(self, game_id: str) -> None:
        if self.config.event_log_dir is None:
            return
        path = Path(self.config.event_log_dir) / f"{game_id}.jsonl"
        try:
            write_jsonl(path, self.events_for(game_id))
        except OSError as exc:
            logger.warning("Could not write event log %s: %s", path, exc)

    def _record(self, event_type: EventType, payload: dict[str, Any], game_id: str | None = None) -> None:
        target = game_id or self.game_id
        move_count = self.move_count if target == self.game_id else 0
        self.events.append(SessionEvent.create(event_type, target, move_count, payload))

    def _spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task
