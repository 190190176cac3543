"""NET rotational-connectivity game implementation."""

from __future__ import annotations

import math
import random
from collections import deque
from dataclasses import replace
from typing import Any, Mapping, Sequence

from gamecore.errors import BoardLayoutError
from gamecore.game import PuzzleGame
from gamecore.result import GameOutcome, TerminationReason

from .net_moves import RotateTile, ToggleLock, move_from_dict
from .net_state import (
    DIRECTION_OFFSETS,
    DOWN,
    LEFT,
    RIGHT,
    UP,
    VALID_ROTATIONS,
    NetState,
    RotationDirection,
    Tile,
    TileType,
)

DEFAULT_GRID_SIZE = 5
MIN_GRID_SIZE = 3
MAX_GRID_SIZE = 7

BASE_SCORE = 1000
SECOND_PENALTY = 5
MOVE_PENALTY = 10


def calculate_score(elapsed_seconds: int, move_count: int) -> int:
    """Score a solved board; never negative."""
    raw = BASE_SCORE - SECOND_PENALTY * elapsed_seconds - MOVE_PENALTY * move_count
    return max(0, math.floor(raw))


def _neighbor(index: int, direction: int, size: int) -> int | None:
    row, col = divmod(index, size)
    d_row, d_col = DIRECTION_OFFSETS[direction]
    n_row, n_col = row + d_row, col + d_col
    if 0 <= n_row < size and 0 <= n_col < size:
        return n_row * size + n_col
    return None


def connected_ids(tiles: Sequence[Tile], size: int, source: int) -> frozenset[int]:
    """Breadth-first reachability from the source over mutually open edges."""
    if not (0 <= source < len(tiles)) or tiles[source].type is TileType.EMPTY:
        return frozenset()
    seen = {source}
    queue = deque([source])
    while queue:
        current = queue.popleft()
        for direction in tiles[current].openings():
            neighbor = _neighbor(current, direction, size)
            if neighbor is None or neighbor in seen:
                continue
            if (direction + 2) % 4 in tiles[neighbor].openings():
                seen.add(neighbor)
                queue.append(neighbor)
    return frozenset(seen)


def with_connectivity(state: NetState) -> NetState:
    """Return ``state`` with every ``connected`` flag recomputed."""
    reachable = connected_ids(state.tiles, state.size, state.source)
    tiles = tuple(
        tile if tile.connected == (tile.id in reachable) else replace(tile, connected=tile.id in reachable)
        for tile in state.tiles
    )
    return replace(state, tiles=tiles)


def _shape_for(openings: set[int]) -> TileType:
    count = len(openings)
    if count == 0:
        return TileType.EMPTY
    if count == 1:
        return TileType.ENDPOINT
    if count == 2:
        return TileType.STRAIGHT if openings in ({UP, DOWN}, {LEFT, RIGHT}) else TileType.CORNER
    if count == 3:
        return TileType.T_JUNCTION
    return TileType.CROSS


def _spanning_tree_openings(size: int, rng: random.Random) -> list[set[int]]:
    """Carve a random spanning tree from the centre with an iterative DFS."""
    total = size * size
    openings: list[set[int]] = [set() for _ in range(total)]
    center = total // 2
    visited = {center}
    stack = [center]
    while stack:
        current = stack.pop()
        candidates = [
            (direction, neighbor)
            for direction in (UP, RIGHT, DOWN, LEFT)
            if (neighbor := _neighbor(current, direction, size)) is not None and neighbor not in visited
        ]
        if not candidates:
            continue
        direction, neighbor = rng.choice(candidates)
        openings[current].add(direction)
        openings[neighbor].add((direction + 2) % 4)
        visited.add(neighbor)
        stack.append(current)
        stack.append(neighbor)
    return openings


class NetGame(PuzzleGame[NetState, RotateTile | ToggleLock]):
    """Rotate pipe tiles until every piece is fed from the centre."""

    game_name = "net"
    remote_game_type = "logic"
    layout_key = "logicGame"

    def new_game(self, seed: int, config: dict[str, Any] | None = None) -> NetState:
        """Scramble a solvable spanning-tree board."""
        cfg = self.resolve_config(config)
        size = int(cfg.get("grid_size", DEFAULT_GRID_SIZE))
        if size < MIN_GRID_SIZE or size > MAX_GRID_SIZE:
            raise ValueError(f"grid_size must be between {MIN_GRID_SIZE} and {MAX_GRID_SIZE}.")

        rng = random.Random(seed)
        shapes = [_shape_for(openings) for openings in _spanning_tree_openings(size, rng)]
        while True:
            tiles = tuple(
                Tile(
                    id=index,
                    row=index // size,
                    col=index % size,
                    type=shape,
                    rotation=rng.choice(VALID_ROTATIONS),
                )
                for index, shape in enumerate(shapes)
            )
            state = with_connectivity(NetState(seed=seed, size=size, source=(size * size) // 2, tiles=tiles))
            # A scramble that happens to be solved is re-rolled.
            if not self.is_terminal(state):
                return state

    def from_layout(self, layout: Mapping[str, Any], config: dict[str, Any] | None = None) -> NetState:
        """Build the board from ``{rows, cols, tiles: [{type, rotation}], source?}``."""
        rows, cols = layout.get("rows"), layout.get("cols")
        raw_tiles = layout.get("tiles")
        if raw_tiles is None and "startState" in layout:
            raise BoardLayoutError(self.game_name, "flat startState boards carry no tile shapes")
        if not isinstance(rows, int) or not isinstance(cols, int) or rows != cols:
            raise BoardLayoutError(self.game_name, "board must be a square grid")
        if not isinstance(raw_tiles, list) or len(raw_tiles) != rows * cols:
            raise BoardLayoutError(self.game_name, f"expected {rows * cols} tiles")

        tiles = []
        for index, raw in enumerate(raw_tiles):
            if not isinstance(raw, Mapping):
                raise BoardLayoutError(self.game_name, f"tile {index} is not an object")
            try:
                tile_type = TileType(raw.get("type"))
            except ValueError as exc:
                raise BoardLayoutError(self.game_name, f"tile {index} has unknown type") from exc
            rotation = raw.get("rotation", 0)
            if rotation not in VALID_ROTATIONS:
                raise BoardLayoutError(self.game_name, f"tile {index} has rotation {rotation!r}")
            row, col = divmod(index, cols)
            tiles.append(
                Tile(
                    id=index,
                    row=row,
                    col=col,
                    type=tile_type,
                    rotation=int(rotation),
                    locked=bool(raw.get("locked", False)),
                )
            )

        source = layout.get("source", (rows * cols) // 2)
        if not isinstance(source, int) or not (0 <= source < len(tiles)):
            raise BoardLayoutError(self.game_name, "source is outside the grid")
        if tiles[source].type is TileType.EMPTY:
            raise BoardLayoutError(self.game_name, "source tile is empty")
        return with_connectivity(NetState(seed=0, size=rows, source=source, tiles=tuple(tiles)))

    def puzzle_params(self, config: dict[str, Any] | None = None) -> dict[str, Any]:
        cfg = self.resolve_config(config)
        return {"gridSize": int(cfg.get("grid_size", DEFAULT_GRID_SIZE))}

    def is_legal(self, state: NetState, move: RotateTile | ToggleLock) -> tuple[bool, str | None]:
        """Validate a rotation or lock toggle."""
        if not isinstance(move, (RotateTile, ToggleLock)):
            return False, "Expected RotateTile or ToggleLock."
        if self.is_terminal(state):
            return False, "Board is already connected."
        tile = state.tile(move.tile_id)
        if tile is None:
            return False, f"Unknown tile {move.tile_id}."
        if isinstance(move, ToggleLock):
            return True, None
        if tile.locked:
            return False, f"Tile {move.tile_id} is locked."
        if tile.type is TileType.EMPTY:
            return False, f"Tile {move.tile_id} is empty."
        return True, None

    def apply_move(self, state: NetState, move: RotateTile | ToggleLock) -> NetState:
        """Rotate (counted) or toggle a lock (not counted)."""
        legal, _ = self.is_legal(state, move)
        if not legal:
            return state

        tile = state.tiles[move.tile_id]
        if isinstance(move, ToggleLock):
            tiles = state.tiles[: tile.id] + (replace(tile, locked=not tile.locked),) + state.tiles[tile.id + 1 :]
            return replace(state, tiles=tiles)

        delta = 90 if move.direction is RotationDirection.CLOCKWISE else -90
        rotated = replace(tile, rotation=(tile.rotation + delta) % 360)
        tiles = state.tiles[: tile.id] + (rotated,) + state.tiles[tile.id + 1 :]
        return with_connectivity(replace(state, tiles=tiles, move_count=state.move_count + 1))

    def is_terminal(self, state: NetState) -> bool:
        playable = [tile for tile in state.tiles if tile.type is not TileType.EMPTY]
        return bool(playable) and all(tile.connected for tile in playable)

    def outcome(self, state: NetState) -> GameOutcome:
        if not self.is_terminal(state):
            raise ValueError("outcome() is only available for connected boards.")
        return GameOutcome(
            success=True,
            termination_reason=TerminationReason.SOLVED,
            stats={"tiles": state.playable_count(), "moves": state.move_count},
        )

    def move_count(self, state: NetState) -> int:
        return state.move_count

    def score(self, elapsed_seconds: int, move_count: int) -> int | None:
        return calculate_score(elapsed_seconds, move_count)

    def snapshot(self, state: NetState) -> dict[str, Any]:
        return {
            "size": state.size,
            "source": state.source,
            "tiles": [
                {
                    "id": tile.id,
                    "row": tile.row,
                    "col": tile.col,
                    "type": tile.type.value,
                    "rotation": tile.rotation,
                    "locked": tile.locked,
                    "connected": tile.connected,
                }
                for tile in state.tiles
            ],
            "connected_tiles": state.connected_count(),
            "total_tiles": state.playable_count(),
        }

    def parse_move(self, data: Mapping[str, Any]) -> RotateTile | ToggleLock:
        return move_from_dict(data)  # type: ignore[return-value]
