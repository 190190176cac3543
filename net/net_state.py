"""State and enums for the NET rotational-connectivity game."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gamecore.state import BoardState

VALID_ROTATIONS: tuple[int, ...] = (0, 90, 180, 270)

# Connector directions, clockwise from the top.
UP, RIGHT, DOWN, LEFT = 0, 1, 2, 3
DIRECTION_OFFSETS: dict[int, tuple[int, int]] = {
    UP: (-1, 0),
    RIGHT: (0, 1),
    DOWN: (1, 0),
    LEFT: (0, -1),
}


class TileType(str, Enum):
    """Pipe shapes."""

    EMPTY = "empty"
    ENDPOINT = "endpoint"
    STRAIGHT = "straight"
    CORNER = "corner"
    T_JUNCTION = "t-junction"
    CROSS = "cross"


# Openings of each shape at rotation 0.
BASE_OPENINGS: dict[TileType, tuple[int, ...]] = {
    TileType.EMPTY: (),
    TileType.ENDPOINT: (UP,),
    TileType.STRAIGHT: (UP, DOWN),
    TileType.CORNER: (UP, RIGHT),
    TileType.T_JUNCTION: (UP, RIGHT, DOWN),
    TileType.CROSS: (UP, RIGHT, DOWN, LEFT),
}


class RotationDirection(str, Enum):
    """Which way a tap turns a tile."""

    CLOCKWISE = "clockwise"
    COUNTERCLOCKWISE = "counterclockwise"


@dataclass(frozen=True)
class Tile:
    """One grid cell."""

    id: int
    row: int
    col: int
    type: TileType
    rotation: int = 0
    locked: bool = False
    connected: bool = False

    def openings(self) -> frozenset[int]:
        """Directions this tile connects to at its current rotation."""
        steps = self.rotation // 90
        return frozenset((direction + steps) % 4 for direction in BASE_OPENINGS[self.type])


@dataclass(frozen=True)
class NetState(BoardState):
    """Immutable NET board; ``connected`` flags are always up to date."""

    seed: int
    size: int
    source: int
    tiles: tuple[Tile, ...]
    move_count: int = 0

    def tile(self, tile_id: int) -> Tile | None:
        """Return the tile with ``tile_id`` or None."""
        if 0 <= tile_id < len(self.tiles):
            return self.tiles[tile_id]
        return None

    def playable_count(self) -> int:
        """Count non-empty tiles."""
        return sum(1 for tile in self.tiles if tile.type is not TileType.EMPTY)

    def connected_count(self) -> int:
        """Count non-empty tiles reachable from the source."""
        return sum(1 for tile in self.tiles if tile.type is not TileType.EMPTY and tile.connected)
