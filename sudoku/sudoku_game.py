"""Sudoku constraint-grid game implementation."""

from __future__ import annotations

import random
from dataclasses import replace
from typing import Any, Iterator, Mapping

from gamecore.errors import BoardLayoutError
from gamecore.game import PuzzleGame
from gamecore.result import GameOutcome, TerminationReason

from .sudoku_moves import EnterValue, EraseCell, move_from_dict
from .sudoku_state import (
    BLOCK_SIZE,
    DEFAULT_MAX_MISTAKES,
    GRID_SIZE,
    Cell,
    Difficulty,
    SudokuState,
)

# Cells blanked out of a full solution per difficulty.
HOLES_BY_DIFFICULTY: dict[Difficulty, int] = {
    Difficulty.EASY: 35,
    Difficulty.MEDIUM: 45,
    Difficulty.HARD: 52,
}

Grid = tuple[tuple[Cell, ...], ...]


def _peers(row: int, col: int) -> Iterator[tuple[int, int]]:
    """Yield every other cell sharing a row, column or block."""
    block_row, block_col = row - row % BLOCK_SIZE, col - col % BLOCK_SIZE
    seen = set()
    for index in range(GRID_SIZE):
        seen.add((row, index))
        seen.add((index, col))
    for r in range(block_row, block_row + BLOCK_SIZE):
        for c in range(block_col, block_col + BLOCK_SIZE):
            seen.add((r, c))
    seen.discard((row, col))
    yield from sorted(seen)


def _in_conflict(cells: Grid, row: int, col: int) -> bool:
    value = cells[row][col].value
    if value is None:
        return False
    return any(cells[r][c].value == value for r, c in _peers(row, col))


def _recompute_errors(cells: Grid) -> Grid:
    """Flag every player-entered cell that breaks a uniqueness constraint."""
    return tuple(
        tuple(
            cell
            if cell.read_only or cell.is_error == _in_conflict(cells, cell.row, cell.col)
            else replace(cell, is_error=not cell.is_error)
            for cell in line
        )
        for line in cells
    )


def _with_cell(cells: Grid, updated: Cell) -> Grid:
    line = cells[updated.row]
    new_line = line[: updated.col] + (updated,) + line[updated.col + 1 :]
    return cells[: updated.row] + (new_line,) + cells[updated.row + 1 :]


def _solved_grid(rng: random.Random) -> list[list[int]]:
    """Shuffle a canonical Latin pattern into a random valid solution."""

    def shuffled_axis() -> list[int]:
        bands = rng.sample(range(BLOCK_SIZE), BLOCK_SIZE)
        return [band * BLOCK_SIZE + offset for band in bands for offset in rng.sample(range(BLOCK_SIZE), BLOCK_SIZE)]

    rows, cols = shuffled_axis(), shuffled_axis()
    digits = rng.sample(range(1, GRID_SIZE + 1), GRID_SIZE)
    return [
        [digits[(BLOCK_SIZE * (r % BLOCK_SIZE) + r // BLOCK_SIZE + c) % GRID_SIZE] for c in cols]
        for r in rows
    ]


def _normalize_max_mistakes(raw: Any) -> int:
    value = int(raw)
    if value < 1:
        raise ValueError("max_mistakes must be >= 1.")
    return value


class SudokuGame(PuzzleGame[SudokuState, EnterValue | EraseCell]):
    """Classic 9x9 Sudoku with a mistake budget."""

    game_name = "sudoku"
    remote_game_type = "attention"
    layout_key = "sudokuGame"

    def new_game(self, seed: int, config: dict[str, Any] | None = None) -> SudokuState:
        """Generate a puzzle by blanking cells from a random solution."""
        cfg = self.resolve_config(config)
        difficulty = Difficulty(cfg.get("difficulty", Difficulty.EASY.value))
        max_mistakes = _normalize_max_mistakes(cfg.get("max_mistakes", DEFAULT_MAX_MISTAKES))

        rng = random.Random(seed)
        solution = _solved_grid(rng)
        holes = set(rng.sample(range(GRID_SIZE * GRID_SIZE), HOLES_BY_DIFFICULTY[difficulty]))
        given = [
            [0 if r * GRID_SIZE + c in holes else solution[r][c] for c in range(GRID_SIZE)]
            for r in range(GRID_SIZE)
        ]
        return self._build(seed, difficulty, given, max_mistakes)

    def from_layout(self, layout: Mapping[str, Any], config: dict[str, Any] | None = None) -> SudokuState:
        """Build the board from ``{given: 9x9 ints, 0 = empty}``."""
        cfg = self.resolve_config(config)
        given = layout.get("given")
        if not isinstance(given, list) or len(given) != GRID_SIZE:
            raise BoardLayoutError(self.game_name, "given must have 9 rows")
        for line in given:
            if not isinstance(line, list) or len(line) != GRID_SIZE:
                raise BoardLayoutError(self.game_name, "every row must have 9 cells")
            if not all(isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= 9 for value in line):
                raise BoardLayoutError(self.game_name, "cells must be integers between 0 and 9")

        try:
            difficulty = Difficulty(cfg.get("difficulty", Difficulty.EASY.value))
            max_mistakes = _normalize_max_mistakes(cfg.get("max_mistakes", DEFAULT_MAX_MISTAKES))
        except ValueError as exc:
            raise BoardLayoutError(self.game_name, str(exc)) from exc
        state = self._build(0, difficulty, given, max_mistakes)
        if any(_in_conflict(state.cells, r, c) for r in range(GRID_SIZE) for c in range(GRID_SIZE)):
            raise BoardLayoutError(self.game_name, "givens break a uniqueness constraint")
        return state

    def puzzle_params(self, config: dict[str, Any] | None = None) -> dict[str, Any]:
        cfg = self.resolve_config(config)
        return {"difficulty": Difficulty(cfg.get("difficulty", Difficulty.EASY.value)).value}

    def is_legal(self, state: SudokuState, move: EnterValue | EraseCell) -> tuple[bool, str | None]:
        """Validate an input against cell ownership and the current value."""
        if not isinstance(move, (EnterValue, EraseCell)):
            return False, "Expected EnterValue or EraseCell."
        if self.is_terminal(state):
            return False, "Board is already finished."
        cell = state.cell(move.row, move.col)
        if cell is None:
            return False, f"Cell ({move.row}, {move.col}) is outside the grid."
        if cell.read_only:
            return False, f"Cell ({move.row}, {move.col}) is a given."
        if isinstance(move, EraseCell):
            if cell.value is None:
                return False, "Cell is already empty."
            return True, None
        if cell.value == move.value:
            return False, "Cell already holds that value."
        return True, None

    def apply_move(self, state: SudokuState, move: EnterValue | EraseCell) -> SudokuState:
        """Write or erase a digit and re-derive conflicts."""
        legal, _ = self.is_legal(state, move)
        if not legal:
            return state

        cell = state.cells[move.row][move.col]
        if isinstance(move, EraseCell):
            cells = _recompute_errors(_with_cell(state.cells, replace(cell, value=None, is_error=False)))
            return replace(state, cells=cells)

        cells = _recompute_errors(_with_cell(state.cells, replace(cell, value=move.value)))
        # Only the cell just written can introduce a new mistake.
        mistakes = state.mistakes + 1 if cells[move.row][move.col].is_error else state.mistakes
        return replace(state, cells=cells, mistakes=mistakes, move_count=state.move_count + 1)

    def is_terminal(self, state: SudokuState) -> bool:
        if state.mistake_limit_reached():
            return True
        return state.filled_count() == GRID_SIZE * GRID_SIZE and not state.has_errors()

    def outcome(self, state: SudokuState) -> GameOutcome:
        if not self.is_terminal(state):
            raise ValueError("outcome() is only available for finished boards.")
        stats = {"mistakes": state.mistakes, "moves": state.move_count, "difficulty": state.difficulty.value}
        if state.mistake_limit_reached():
            return GameOutcome(success=False, termination_reason=TerminationReason.MISTAKE_LIMIT, stats=stats)
        return GameOutcome(success=True, termination_reason=TerminationReason.SOLVED, stats=stats)

    def move_count(self, state: SudokuState) -> int:
        return state.move_count

    def snapshot(self, state: SudokuState) -> dict[str, Any]:
        return {
            "cells": [
                [
                    {"value": cell.value, "read_only": cell.read_only, "is_error": cell.is_error}
                    for cell in line
                ]
                for line in state.cells
            ],
            "difficulty": state.difficulty.value,
            "mistakes": state.mistakes,
            "max_mistakes": state.max_mistakes,
            "filled": state.filled_count(),
        }

    def parse_move(self, data: Mapping[str, Any]) -> EnterValue | EraseCell:
        return move_from_dict(data)  # type: ignore[return-value]

    def _build(self, seed: int, difficulty: Difficulty, given: list[list[int]], max_mistakes: int) -> SudokuState:
        cells = tuple(
            tuple(
                Cell(row=r, col=c, value=value or None, read_only=value != 0)
                for c, value in enumerate(line)
            )
            for r, line in enumerate(given)
        )
        return SudokuState(seed=seed, difficulty=difficulty, cells=cells, max_mistakes=max_mistakes)
