"""Session lifecycle tests: attempts, single finalize, resets and degradations."""

from __future__ import annotations

import asyncio
import io
import json
from http.client import RemoteDisconnected

import pytest

import gamecore.http_utils as http_utils
from conftest import net_layout_one_turn_from_solved, sudoku_layout_three_blanks
from gamecore.achievements import Achievement
from gamecore.attempts import HttpAttemptClient
from gamecore.clock import SessionClock
from gamecore.env_utils import ClientConfig
from gamecore.errors import SessionConfigurationError
from gamecore.events import EventType
from gamecore.session import PuzzleSession, SessionConfig, SessionGuard, SessionPhase
from memory.memory_game import MemoryGame
from memory.memory_moves import FlipCard
from memory.memory_state import CardState, MemoryState
from net.net_game import NetGame
from net.net_moves import RotateTile, ToggleLock
from sudoku.sudoku_game import SudokuGame
from sudoku.sudoku_moves import EnterValue

FAST_MEMORY = {"match_delay_ms": 1, "mismatch_delay_ms": 1}
SETTLE_WAIT = 0.03

VIEW_KEYS = {
    "session_id",
    "game",
    "game_id",
    "board",
    "move_count",
    "elapsed_seconds",
    "is_complete",
    "completed_successfully",
    "is_loading",
    "score",
    "phase",
    "achievements_unlocked",
    "active_achievement",
}


def _memory_session(pairs: int = 2, **kwargs) -> PuzzleSession:
    return PuzzleSession(MemoryGame(default_config={"pairs": pairs, **FAST_MEMORY}), **kwargs)


def _pairs(state: MemoryState) -> list[tuple[int, int]]:
    positions: dict[int, list[int]] = {}
    for card in state.cards:
        positions.setdefault(card.pair_id, []).append(card.id)
    return [(first, second) for first, second in positions.values()]


def _mismatch(state: MemoryState) -> tuple[int, int]:
    first = state.cards[0]
    other = next(card for card in state.cards if card.pair_id != first.pair_id)
    return first.id, other.id


def _events(session: PuzzleSession, event_type: EventType) -> list:
    return [event for event in session.events if event.event_type is event_type]


def test_session_guard_allows_one_finalize_per_game_id() -> None:
    guard = SessionGuard()
    assert guard.should_finalize("a")

    guard.mark_finalized("a")
    assert not guard.should_finalize("a")
    assert not guard.should_finalize("b")

    guard.reset()
    assert not guard.should_finalize("a")
    assert guard.should_finalize("b")


def test_session_clock_floors_seconds_and_freezes_when_stopped(fake_time) -> None:
    clock = SessionClock(now=fake_time)
    assert clock.elapsed_seconds() == 0

    clock.start()
    fake_time.advance(2.7)
    assert clock.elapsed_seconds() == 2
    assert clock.elapsed_ms() == 2700

    clock.stop()
    fake_time.advance(10)
    assert clock.elapsed_seconds() == 2

    clock.reset()
    assert clock.elapsed() == 0.0
    assert not clock.started


def test_session_config_rejects_non_positive_timeouts() -> None:
    with pytest.raises(SessionConfigurationError):
        SessionConfig(attempt_start_timeout_sec=0)


def test_local_memory_session_finalizes_exactly_once() -> None:
    async def scenario() -> PuzzleSession:
        session = _memory_session()
        await session.reset(seed=4)
        assert session.view()["is_loading"] is False
        assert set(session.view()) == VIEW_KEYS

        for first, second in _pairs(session.state):
            assert session.apply_move(FlipCard(card_id=first))
            assert session.apply_move(FlipCard(card_id=second))
            await asyncio.sleep(SETTLE_WAIT)
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert session.is_complete
    assert session.completed_successfully
    assert session.score is None
    assert session.phase is SessionPhase.FINALIZED
    assert session.result is not None
    assert session.result.move_count == 2
    assert session.result.attempt_id is None
    assert len(_events(session, EventType.TERMINAL)) == 1
    assert session.apply_move(FlipCard(card_id=0)) is False


def test_memory_mismatch_resolves_after_delay_and_blocks_flips_meanwhile() -> None:
    async def scenario() -> None:
        session = _memory_session(pairs=12)
        await session.reset(seed=11)
        first, second = _mismatch(session.state)
        third = next(card.id for card in session.state.cards if card.id not in {first, second})

        assert session.apply_move(FlipCard(card_id=first))
        assert session.apply_move(FlipCard(card_id=second))
        assert session.move_count == 1
        assert session.apply_move(FlipCard(card_id=third)) is False
        assert session.view()["board"]["is_processing"] is True

        await asyncio.sleep(SETTLE_WAIT)
        assert session.state.card(first).state is CardState.HIDDEN
        assert session.state.card(second).state is CardState.HIDDEN
        assert session.apply_move(FlipCard(card_id=third))
        assert len(_events(session, EventType.SETTLE)) == 1
        assert len(_events(session, EventType.ILLEGAL_MOVE)) == 1

    asyncio.run(scenario())


def test_stale_settle_is_dropped_after_reset() -> None:
    async def scenario() -> None:
        session = _memory_session()
        await session.reset(seed=4)
        first, second = _mismatch(session.state)
        session.apply_move(FlipCard(card_id=first))
        session.apply_move(FlipCard(card_id=second))
        old_game_id = session.game_id

        await session.reset(seed=4)
        fresh = session.state
        session._run_settle(old_game_id)
        await asyncio.sleep(SETTLE_WAIT)

        assert session.state is fresh
        assert session.game_id != old_game_id
        assert session.phase is SessionPhase.NOT_STARTED

    asyncio.run(scenario())


def test_first_move_starts_attempt_and_completion_reports_once(make_client, fake_time, net_layout) -> None:
    badge = Achievement(id="net-1", title="First connection", points=10)
    client = make_client(layouts={"net": net_layout}, achievement_batches=[[badge, badge]])

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client, clock_factory=lambda: SessionClock(now=fake_time))
        await session.reset(seed=1)
        assert session.puzzle_id == "puzzle-1"
        assert session.phase is SessionPhase.NOT_STARTED
        assert client.calls_for("start_attempt") == []

        for _ in range(4):
            assert session.apply_move(RotateTile(tile_id=1))
        assert session.phase is SessionPhase.IN_PROGRESS
        await asyncio.sleep(0)
        assert session.attempt_id == "attempt-1"

        fake_time.advance(10)
        assert session.apply_move(RotateTile(tile_id=7))
        assert session.is_complete
        assert session.score == 900
        assert session.phase is SessionPhase.FINALIZING
        assert session.apply_move(RotateTile(tile_id=1)) is False
        session._check_completion()

        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert client.calls_for("create_puzzle") == [("net", "logicGame", {"gridSize": 5})]
    assert client.calls_for("start_attempt") == [("puzzle-1", "logic")]
    finishes = client.calls_for("finish_attempt")
    assert len(finishes) == 1
    attempt_id, report = finishes[0]
    assert attempt_id == "attempt-1"
    assert report.success is True
    assert report.moves == 5
    assert report.duration_ms == 10000
    assert report.score == 900
    assert report.client_date is not None
    assert client.calls_for("check_achievements") == ["attempt-1"]

    assert session.phase is SessionPhase.FINALIZED
    assert session.result.attempt_id == "attempt-1"
    assert session.achievements_unlocked == [badge]
    assert session.view()["active_achievement"]["id"] == "net-1"
    assert session.view()["elapsed_seconds"] == 10


def test_hung_start_attempt_does_not_block_completion(make_client, fake_time, net_layout) -> None:
    client = make_client(layouts={"net": net_layout}, hang={"start_attempt"})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(
            NetGame(),
            client=client,
            config=SessionConfig(attempt_start_timeout_sec=0.05),
            clock_factory=lambda: SessionClock(now=fake_time),
        )
        await session.reset(seed=1)
        assert session.apply_move(RotateTile(tile_id=7))
        assert session.is_complete
        assert session.completed_successfully
        assert session.score == 990

        await session.wait_finalized()
        await session.aclose()
        return session

    session = asyncio.run(scenario())

    assert client.calls_for("finish_attempt") == []
    assert session.phase is SessionPhase.FINALIZED
    assert session.result.attempt_id is None
    errors = _events(session, EventType.REMOTE_ERROR)
    assert [event.payload["operation"] for event in errors] == ["start_attempt"]


def test_failed_start_attempt_keeps_playing_locally(make_client, net_layout) -> None:
    client = make_client(layouts={"net": net_layout}, fail={"start_attempt"})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        session.apply_move(RotateTile(tile_id=7))
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert session.completed_successfully
    assert session.attempt_id is None
    assert client.calls_for("finish_attempt") == []


def test_create_puzzle_failure_falls_back_to_local_board(make_client) -> None:
    client = make_client(fail={"create_puzzle"})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=3)
        session.apply_move(RotateTile(tile_id=0))
        await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())

    assert session.puzzle_id is None
    assert session.state.seed == 3
    assert session.state.size == 5
    assert client.calls_for("start_attempt") == []
    assert session.phase is SessionPhase.IN_PROGRESS


def test_malformed_layout_falls_back_but_keeps_puzzle_id(make_client) -> None:
    client = make_client(layouts={"net": {"rows": 2, "cols": 3, "tiles": []}})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        return session

    session = asyncio.run(scenario())

    assert session.puzzle_id == "puzzle-1"
    assert session.state == NetGame().new_game(seed=1)
    errors = _events(session, EventType.REMOTE_ERROR)
    assert errors[0].payload["type"] == "BoardLayoutError"


def test_local_layout_mode_ignores_remote_board(make_client, net_layout) -> None:
    client = make_client(layouts={"net": net_layout})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client, config=SessionConfig(use_remote_puzzles=False))
        await session.reset(seed=2)
        return session

    session = asyncio.run(scenario())

    assert session.puzzle_id == "puzzle-1"
    assert session.state == NetGame().new_game(seed=2)
    assert _events(session, EventType.REMOTE_ERROR) == []


def test_finish_failure_skips_achievements_and_keeps_board_complete(make_client, net_layout) -> None:
    badge = Achievement(id="x", title="Never shown")
    client = make_client(layouts={"net": net_layout}, fail={"finish_attempt"}, achievement_batches=[[badge]])

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        session.apply_move(RotateTile(tile_id=7))
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert session.is_complete
    assert session.completed_successfully
    assert client.calls_for("check_achievements") == []
    assert session.achievements.active is None
    assert session.phase is SessionPhase.FINALIZED


def test_achievement_check_failure_yields_no_achievements(make_client, net_layout) -> None:
    client = make_client(layouts={"net": net_layout}, fail={"check_achievements"})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        session.apply_move(RotateTile(tile_id=7))
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert client.calls_for("check_achievements") == ["attempt-1"]
    assert session.achievements_unlocked == []
    assert session.phase is SessionPhase.FINALIZED


def test_finalize_resolving_after_reset_is_ignored(make_client, net_layout) -> None:
    badge = Achievement(id="late", title="Too late")

    async def scenario():
        gate = asyncio.Event()
        client = make_client(
            layouts={"net": net_layout},
            achievement_batches=[[badge]],
            gates={"finish_attempt": gate},
        )
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        session.apply_move(RotateTile(tile_id=7))
        old_task = session._finalize_task
        old_game_id = session.game_id

        await session.reset(seed=2)
        gate.set()
        await old_task
        return session, client, old_game_id

    session, client, old_game_id = asyncio.run(scenario())

    assert client.calls_for("check_achievements") == ["attempt-1"]
    assert session.game_id != old_game_id
    assert session.achievements.active is None
    assert session.achievements_unlocked == []
    assert session.phase is SessionPhase.NOT_STARTED
    assert not session.is_complete
    assert session.attempt_id is None


def test_sequential_sessions_finalize_independently(make_client, net_layout) -> None:
    client = make_client(layouts={"net": net_layout})

    async def scenario():
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        session.apply_move(RotateTile(tile_id=7))
        await session.wait_finalized()
        first_game_id = session.game_id

        await session.reset(seed=2)
        assert not session.is_complete
        assert session.guard.should_finalize(session.game_id)
        session.apply_move(RotateTile(tile_id=7))
        await session.wait_finalized()
        return session, first_game_id

    session, first_game_id = asyncio.run(scenario())

    assert [attempt_id for attempt_id, _ in client.calls_for("finish_attempt")] == ["attempt-1", "attempt-2"]
    assert client.calls_for("start_attempt") == [("puzzle-1", "logic"), ("puzzle-2", "logic")]
    assert session.guard.last_finalized_game_id == session.game_id
    assert session.game_id != first_game_id
    finished_games = {event.game_id for event in _events(session, EventType.TERMINAL)}
    assert finished_games == {first_game_id, session.game_id}


def test_lock_toggle_does_not_start_the_attempt(make_client, net_layout) -> None:
    client = make_client(layouts={"net": net_layout})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=1)
        assert session.apply_move(ToggleLock(tile_id=3))
        await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())

    assert session.phase is SessionPhase.NOT_STARTED
    assert not session.clock.started
    assert session.state.tile(3).locked
    assert client.calls_for("start_attempt") == []


def test_sudoku_mistake_limit_reports_failure_without_score(make_client) -> None:
    client = make_client(layouts={"sudoku": sudoku_layout_three_blanks()})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(SudokuGame(), client=client)
        await session.reset(seed=1)
        for col, value in enumerate((5, 6, 7)):
            assert not session.is_complete
            assert session.apply_move(EnterValue(row=0, col=col, value=value))
        assert session.is_complete
        assert not session.completed_successfully
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    assert not session.completed_successfully
    assert session.score is None
    assert client.calls_for("create_puzzle") == [("sudoku", "sudokuGame", {"difficulty": "easy"})]
    assert client.calls_for("start_attempt") == [("puzzle-1", "attention")]
    _, report = client.calls_for("finish_attempt")[0]
    assert report.success is False
    assert report.moves == 3
    assert "score" not in report.to_payload()
    assert session.result.termination_reason.value == "mistake_limit"


def test_quit_stops_clock_and_ignores_further_moves(fake_time) -> None:
    async def scenario() -> PuzzleSession:
        session = _memory_session(clock_factory=lambda: SessionClock(now=fake_time))
        await session.reset(seed=4)
        first, second = _mismatch(session.state)
        session.apply_move(FlipCard(card_id=first))
        fake_time.advance(5)
        session.quit()
        fake_time.advance(5)
        assert session.apply_move(FlipCard(card_id=second)) is False
        return session

    session = asyncio.run(scenario())

    assert session.abandoned
    assert not session.clock.running
    assert session.view()["elapsed_seconds"] == 5
    assert not session.is_complete


def test_event_log_is_written_when_configured(tmp_path) -> None:
    async def scenario() -> PuzzleSession:
        session = _memory_session(pairs=1, config=SessionConfig(event_log_dir=str(tmp_path)))
        await session.reset(seed=1)
        session.apply_move(FlipCard(card_id=0))
        session.apply_move(FlipCard(card_id=1))
        await asyncio.sleep(SETTLE_WAIT)
        await session.wait_finalized()
        return session

    session = asyncio.run(scenario())

    path = tmp_path / f"{session.game_id}.jsonl"
    lines = [json.loads(line) for line in path.read_text(encoding="utf-8").splitlines()]
    kinds = [line["event_type"] for line in lines]
    assert kinds[0] == "session_start"
    assert kinds[-1] == "terminal"
    assert kinds.count("move") == 2
    assert all(line["game_id"] == session.game_id for line in lines)


class _Response(io.BytesIO):
    def __enter__(self):
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


def _http_client() -> HttpAttemptClient:
    return HttpAttemptClient(ClientConfig(base_url="https://api.example.test", timeout_sec=1.0))


def test_dropped_connection_on_create_falls_back_to_local_board(monkeypatch) -> None:
    def _urlopen(request, timeout):
        raise RemoteDisconnected("Remote end closed connection without response")

    monkeypatch.setattr(http_utils, "urlopen", _urlopen)

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=_http_client())
        await session.reset(seed=1)
        return session

    session = asyncio.run(scenario())

    assert session.puzzle_id is None
    assert session.state == NetGame().new_game(seed=1)
    errors = _events(session, EventType.REMOTE_ERROR)
    assert [event.payload["operation"] for event in errors] == ["create_puzzle"]


def test_undecodable_start_response_still_finalizes(monkeypatch) -> None:
    requested: list[str] = []
    bodies = {
        "/puzzles/net": json.dumps({"puzzle": {"id": "p-7"}, "logicGame": net_layout_one_turn_from_solved()}).encode(),
        "/attempts/start": b"\xff\xfe\xfd",
    }

    def _urlopen(request, timeout):
        path = request.full_url.removeprefix("https://api.example.test")
        requested.append(path)
        return _Response(bodies.get(path, b"{}"))

    monkeypatch.setattr(http_utils, "urlopen", _urlopen)

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=_http_client())
        await session.reset(seed=1)
        assert session.puzzle_id == "p-7"
        assert session.apply_move(RotateTile(tile_id=7))
        await asyncio.wait_for(session.wait_finalized(), timeout=5)
        return session

    session = asyncio.run(scenario())

    assert session.phase is SessionPhase.FINALIZED
    assert session.completed_successfully
    assert session.result.attempt_id is None
    assert requested == ["/puzzles/net", "/attempts/start"]
    errors = _events(session, EventType.REMOTE_ERROR)
    assert [event.payload["operation"] for event in errors] == ["start_attempt"]


def test_memory_board_without_a_service_grid_plays_locally(make_client) -> None:
    client = make_client()

    async def scenario() -> tuple[PuzzleSession, PuzzleSession]:
        odd = _memory_session(pairs=7, client=client)
        await odd.reset(seed=1)
        square = _memory_session(pairs=2, client=client)
        await square.reset(seed=1)
        return odd, square

    odd, square = asyncio.run(scenario())

    assert odd.puzzle_id is None
    assert len(odd.state.cards) == 14
    assert square.puzzle_id == "puzzle-1"
    assert client.calls_for("create_puzzle") == [("memory", "memoryGame", {"rows": 2, "cols": 2})]


def test_service_shaped_net_board_keeps_puzzle_id_with_local_tiles(make_client) -> None:
    client = make_client(layouts={"net": {"rows": 5, "cols": 5, "startState": [0] * 25}})

    async def scenario() -> PuzzleSession:
        session = PuzzleSession(NetGame(), client=client)
        await session.reset(seed=4)
        session.apply_move(RotateTile(tile_id=session.state.source))
        await asyncio.sleep(0)
        return session

    session = asyncio.run(scenario())

    assert session.puzzle_id == "puzzle-1"
    assert session.state.size == 5
    assert client.calls_for("start_attempt") == [("puzzle-1", "logic")]
