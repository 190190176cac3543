"""Move definitions for Sudoku."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from gamecore.move import Move


class MoveType(str, Enum):
    """Supported Sudoku move discriminators."""

    ENTER_VALUE = "EnterValue"
    ERASE_CELL = "EraseCell"


@dataclass(frozen=True)
class EnterValue(Move):
    """Write a digit into a cell."""

    row: int
    col: int
    value: int
    move_type = MoveType.ENTER_VALUE.value

    def __post_init__(self) -> None:
        object.__setattr__(self, "row", int(self.row))
        object.__setattr__(self, "col", int(self.col))
        object.__setattr__(self, "value", int(self.value))
        if self.value < 1 or self.value > 9:
            raise ValueError("EnterValue.value must be between 1 and 9.")


@dataclass(frozen=True)
class EraseCell(Move):
    """Clear a player-entered digit."""

    row: int
    col: int
    move_type = MoveType.ERASE_CELL.value
    counts_as_play = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "row", int(self.row))
        object.__setattr__(self, "col", int(self.col))


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a Sudoku move from JSON payload."""
    move_type = data.get("type") or data.get("move_type")
    if move_type == MoveType.ENTER_VALUE.value:
        if "value" not in data and "number" in data:
            translated = dict(data)
            translated["value"] = translated.pop("number")
            return EnterValue.from_dict(translated)
        return EnterValue.from_dict(data)
    if move_type == MoveType.ERASE_CELL.value:
        return EraseCell.from_dict(data)
    raise ValueError(f"Unknown Sudoku move type: {move_type!r}")
