"""Matching-pairs memory game."""

from .memory_game import MemoryGame
from .memory_moves import FlipCard, MoveType, move_from_dict
from .memory_state import Card, CardState, MemoryState

__all__ = [
    "Card",
    "CardState",
    "FlipCard",
    "MemoryGame",
    "MemoryState",
    "MoveType",
    "move_from_dict",
]
