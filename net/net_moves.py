"""Move definitions for NET."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from gamecore.move import Move

from .net_state import RotationDirection


class MoveType(str, Enum):
    """Supported NET move discriminators."""

    ROTATE_TILE = "RotateTile"
    TOGGLE_LOCK = "ToggleLock"


@dataclass(frozen=True)
class RotateTile(Move):
    """Turn a tile a quarter turn."""

    tile_id: int
    direction: RotationDirection = RotationDirection.CLOCKWISE
    move_type = MoveType.ROTATE_TILE.value

    def __post_init__(self) -> None:
        object.__setattr__(self, "tile_id", int(self.tile_id))
        object.__setattr__(self, "direction", RotationDirection(self.direction))


@dataclass(frozen=True)
class ToggleLock(Move):
    """Pin or unpin a tile so it cannot be rotated by accident."""

    tile_id: int
    move_type = MoveType.TOGGLE_LOCK.value
    counts_as_play = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "tile_id", int(self.tile_id))


def _with_tile_id(data: Mapping[str, Any]) -> Mapping[str, Any]:
    if "tile_id" not in data and "tileId" in data:
        translated = dict(data)
        translated["tile_id"] = translated.pop("tileId")
        return translated
    return data


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a NET move from JSON payload."""
    move_type = data.get("type") or data.get("move_type")
    if move_type == MoveType.ROTATE_TILE.value:
        return RotateTile.from_dict(_with_tile_id(data))
    if move_type == MoveType.TOGGLE_LOCK.value:
        return ToggleLock.from_dict(_with_tile_id(data))
    raise ValueError(f"Unknown NET move type: {move_type!r}")
