"""Shared fixtures: an in-process stand-in for the remote attempt service."""

from __future__ import annotations

import asyncio
from typing import Any, Iterable, Mapping

import pytest

from gamecore.achievements import Achievement
from gamecore.attempts import AttemptClient, PuzzleLayout
from gamecore.errors import RemoteServiceError
from gamecore.result import AttemptReport


class FakeAttemptClient(AttemptClient):
    """Records every call; operations can be told to fail, hang or wait on a gate."""

    def __init__(
        self,
        *,
        layouts: Mapping[str, dict[str, Any]] | None = None,
        achievement_batches: Iterable[list[Achievement]] = (),
        fail: Iterable[str] = (),
        hang: Iterable[str] = (),
        gates: Mapping[str, asyncio.Event] | None = None,
    ) -> None:
        self.layouts = dict(layouts or {})
        self.achievement_batches = list(achievement_batches)
        self.fail = set(fail)
        self.hang = set(hang)
        self.gates = dict(gates or {})
        self.calls: list[tuple[str, Any]] = []
        self._puzzles = 0
        self._attempts = 0

    async def _enter(self, operation: str) -> None:
        if operation in self.gates:
            await self.gates[operation].wait()
        if operation in self.hang:
            await asyncio.Event().wait()
        if operation in self.fail:
            raise RemoteServiceError(operation, "HTTP 500 from fake", status=500)

    def calls_for(self, operation: str) -> list[Any]:
        return [args for name, args in self.calls if name == operation]

    async def create_puzzle(self, game_name: str, layout_key: str, params: Mapping[str, Any]) -> PuzzleLayout:
        self.calls.append(("create_puzzle", (game_name, layout_key, dict(params))))
        await self._enter("create_puzzle")
        self._puzzles += 1
        return PuzzleLayout(puzzle_id=f"puzzle-{self._puzzles}", layout=dict(self.layouts.get(game_name, {})))

    async def start_attempt(self, puzzle_id: str, game_type: str) -> str:
        self.calls.append(("start_attempt", (puzzle_id, game_type)))
        await self._enter("start_attempt")
        self._attempts += 1
        return f"attempt-{self._attempts}"

    async def finish_attempt(self, attempt_id: str, report: AttemptReport) -> None:
        self.calls.append(("finish_attempt", (attempt_id, report)))
        await self._enter("finish_attempt")

    async def check_achievements(self, attempt_id: str) -> list[Achievement]:
        self.calls.append(("check_achievements", attempt_id))
        await self._enter("check_achievements")
        if self.achievement_batches:
            return self.achievement_batches.pop(0)
        return []


class FakeClock:
    """Manually advanced monotonic time source."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def make_client():
    def _make(**kwargs: Any) -> FakeAttemptClient:
        return FakeAttemptClient(**kwargs)

    return _make


@pytest.fixture
def fake_time() -> FakeClock:
    return FakeClock()


def net_layout_one_turn_from_solved() -> dict[str, Any]:
    """3x3 star around a cross; only the bottom endpoint needs one clockwise turn."""
    empty = {"type": "empty", "rotation": 0}
    return {
        "rows": 3,
        "cols": 3,
        "tiles": [
            empty,
            {"type": "endpoint", "rotation": 180},
            empty,
            {"type": "endpoint", "rotation": 90},
            {"type": "cross", "rotation": 0},
            {"type": "endpoint", "rotation": 270},
            empty,
            {"type": "endpoint", "rotation": 270},
            empty,
        ],
    }


def sudoku_solution() -> list[list[int]]:
    return [[(r * 3 + r // 3 + c) % 9 + 1 for c in range(9)] for r in range(9)]


def sudoku_layout_two_blanks() -> dict[str, Any]:
    """Solved grid with (0, 0) = 1 and (0, 1) = 2 blanked."""
    given = sudoku_solution()
    given[0][0] = 0
    given[0][1] = 0
    return {"rows": 9, "cols": 9, "given": given}


def sudoku_layout_three_blanks() -> dict[str, Any]:
    """Solved grid with the first three cells of row 0 (1, 2, 3) blanked."""
    given = sudoku_solution()
    given[0][:3] = [0, 0, 0]
    return {"rows": 9, "cols": 9, "given": given}


@pytest.fixture
def net_layout() -> dict[str, Any]:
    return net_layout_one_turn_from_solved()
