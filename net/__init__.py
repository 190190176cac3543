"""NET rotational-connectivity game."""

from .net_game import NetGame, calculate_score, connected_ids, with_connectivity
from .net_moves import MoveType, RotateTile, ToggleLock, move_from_dict
from .net_state import NetState, RotationDirection, Tile, TileType

__all__ = [
    "MoveType",
    "NetGame",
    "NetState",
    "RotateTile",
    "RotationDirection",
    "Tile",
    "TileType",
    "ToggleLock",
    "calculate_score",
    "connected_ids",
    "move_from_dict",
    "with_connectivity",
]
