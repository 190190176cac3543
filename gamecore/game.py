"""Core game interface for single-player puzzle boards."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Generic, Mapping, TypeVar

from .move import Move
from .result import GameOutcome
from .state import BoardState

StateT = TypeVar("StateT", bound=BoardState)
MoveT = TypeVar("MoveT", bound=Move)


class PuzzleGame(ABC, Generic[StateT, MoveT]):
    """Abstract interface that every puzzle implementation must satisfy.

    All methods are pure: they read a snapshot and return a new one (or the
    same one when nothing changes). Illegal moves are never an error here.
    """

    game_name: str = "puzzle"
    # Game type understood by the remote attempt service.
    remote_game_type: str = "memory"
    # Key holding the board details in the create-puzzle response.
    layout_key: str = "puzzle"

    def __init__(self, default_config: dict[str, Any] | None = None):
        self.default_config = default_config or {}

    def resolve_config(self, config: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Merge per-session config over the game defaults."""
        cfg = dict(self.default_config)
        cfg.update(config or {})
        return cfg

    @abstractmethod
    def new_game(self, seed: int, config: dict[str, Any] | None = None) -> StateT:
        """Generate a fresh board on the client for a seed."""

    @abstractmethod
    def from_layout(self, layout: Mapping[str, Any], config: dict[str, Any] | None = None) -> StateT:
        """Build a board from a server-provided layout or raise BoardLayoutError."""

    def puzzle_params(self, config: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """Return the body sent to the create-puzzle endpoint.

        ``None`` means the configured board cannot be requested remotely and the
        session plays it locally without an attempt.
        """
        return {}

    @abstractmethod
    def is_legal(self, state: StateT, move: MoveT) -> tuple[bool, str | None]:
        """Return whether a move is legal and an optional reason when illegal."""

    @abstractmethod
    def apply_move(self, state: StateT, move: MoveT) -> StateT:
        """Apply a move; return ``state`` itself when the move is rejected."""

    @abstractmethod
    def is_terminal(self, state: StateT) -> bool:
        """Return whether the board ended the session."""

    @abstractmethod
    def outcome(self, state: StateT) -> GameOutcome:
        """Return the terminal signal for a terminal board."""

    @abstractmethod
    def move_count(self, state: StateT) -> int:
        """Return the number of counted moves on the board."""

    @abstractmethod
    def snapshot(self, state: StateT) -> dict[str, Any]:
        """Return the board as the presentation layer consumes it."""

    @abstractmethod
    def parse_move(self, data: Mapping[str, Any]) -> MoveT:
        """Parse a move payload produced by a client."""

    def score(self, elapsed_seconds: int, move_count: int) -> int | None:
        """Return the numeric score for a solved board, if the game has one."""
        return None

    def settle_delay(self, state: StateT) -> float | None:
        """Seconds until a pending visual resolution should run, if any."""
        return None

    def settle(self, state: StateT) -> StateT:
        """Run the pending resolution step; default is a no-op."""
        return state
