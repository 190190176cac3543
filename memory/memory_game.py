"""Matching-pairs memory game implementation."""

from __future__ import annotations

import random
from collections import Counter
from dataclasses import replace
from typing import Any, Mapping

from gamecore.errors import BoardLayoutError
from gamecore.game import PuzzleGame
from gamecore.result import GameOutcome, TerminationReason

from .memory_moves import FlipCard, move_from_dict
from .memory_state import Card, CardState, MemoryState

DEFAULT_SYMBOLS: tuple[str, ...] = (
    "🐶",
    "🐱",
    "🐭",
    "🐹",
    "🐰",
    "🦊",
    "🐻",
    "🐼",
    "🐨",
    "🐯",
    "🦁",
    "🐮",
    "🐷",
    "🐸",
    "🐵",
    "🐔",
    "🐧",
    "🐦",
)
DEFAULT_PAIRS = 12
# Side limits of a remote memory grid.
MIN_GRID_SIDE = 2
MAX_GRID_SIDE = 6
DEFAULT_MATCH_DELAY_MS = 500
DEFAULT_MISMATCH_DELAY_MS = 1000


class MemoryGame(PuzzleGame[MemoryState, FlipCard]):
    """Flip two cards at a time and find every pair."""

    game_name = "memory"
    remote_game_type = "memory"
    layout_key = "memoryGame"

    def new_game(self, seed: int, config: dict[str, Any] | None = None) -> MemoryState:
        """Create a shuffled board with ``pairs`` symbol pairs."""
        cfg = self.resolve_config(config)
        pairs = int(cfg.get("pairs", DEFAULT_PAIRS))
        if pairs < 1 or pairs > len(DEFAULT_SYMBOLS):
            raise ValueError(f"pairs must be between 1 and {len(DEFAULT_SYMBOLS)}.")

        pair_ids = [pair_id for pair_id in range(pairs) for _ in range(2)]
        random.Random(seed).shuffle(pair_ids)
        return self._build(seed, DEFAULT_SYMBOLS[:pairs], pair_ids)

    def from_layout(self, layout: Mapping[str, Any], config: dict[str, Any] | None = None) -> MemoryState:
        """Build the board from ``{symbols, layout, rows?, cols?}``."""
        symbols = layout.get("symbols")
        positions = layout.get("layout")
        if not isinstance(symbols, list) or not symbols:
            raise BoardLayoutError(self.game_name, "symbols must be a non-empty list")
        if not all(isinstance(symbol, str) and symbol for symbol in symbols):
            raise BoardLayoutError(self.game_name, "symbols must be non-empty strings")
        if len(set(symbols)) != len(symbols):
            raise BoardLayoutError(self.game_name, "symbols must be distinct")
        if not isinstance(positions, list) or not all(
            isinstance(index, int) and not isinstance(index, bool) for index in positions
        ):
            raise BoardLayoutError(self.game_name, "layout must be a list of symbol indices")

        rows, cols = layout.get("rows"), layout.get("cols")
        if isinstance(rows, int) and isinstance(cols, int) and rows * cols != len(positions):
            raise BoardLayoutError(self.game_name, f"{rows}x{cols} grid does not hold {len(positions)} cards")

        counts = Counter(positions)
        if set(counts) != set(range(len(symbols))) or any(count != 2 for count in counts.values()):
            raise BoardLayoutError(self.game_name, "every symbol must appear exactly twice")

        return self._build(0, tuple(symbols), positions)

    def puzzle_params(self, config: dict[str, Any] | None = None) -> dict[str, Any] | None:
        """Pick the squarest rows x cols grid the service accepts, or None if none fits."""
        cfg = self.resolve_config(config)
        cards = int(cfg.get("pairs", DEFAULT_PAIRS)) * 2
        for rows in range(MAX_GRID_SIDE, MIN_GRID_SIDE - 1, -1):
            cols, remainder = divmod(cards, rows)
            if remainder == 0 and rows <= cols <= MAX_GRID_SIDE:
                return {"rows": rows, "cols": cols}
        return None

    def is_legal(self, state: MemoryState, move: FlipCard) -> tuple[bool, str | None]:
        """Validate a flip against the current table."""
        if not isinstance(move, FlipCard):
            return False, "Expected FlipCard."
        if self.is_terminal(state):
            return False, "Board is already solved."
        if state.is_processing():
            return False, "Two cards are already face up."
        card = state.card(move.card_id)
        if card is None:
            return False, f"Unknown card {move.card_id}."
        if card.state is not CardState.HIDDEN:
            return False, f"Card {move.card_id} is already {card.state.value}."
        return True, None

    def apply_move(self, state: MemoryState, move: FlipCard) -> MemoryState:
        """Flip a card; the second flip of a turn counts as one move."""
        legal, _ = self.is_legal(state, move)
        if not legal:
            return state

        cards = tuple(
            replace(card, state=CardState.VISIBLE) if card.id == move.card_id else card
            for card in state.cards
        )
        face_up = state.face_up + (move.card_id,)
        move_count = state.move_count + 1 if len(face_up) == 2 else state.move_count
        return replace(state, cards=cards, face_up=face_up, move_count=move_count)

    def settle_delay(self, state: MemoryState) -> float | None:
        """Matches settle quickly; mismatches stay visible longer."""
        if not state.is_processing():
            return None
        cfg = self.resolve_config()
        if self._face_up_match(state):
            return int(cfg.get("match_delay_ms", DEFAULT_MATCH_DELAY_MS)) / 1000.0
        return int(cfg.get("mismatch_delay_ms", DEFAULT_MISMATCH_DELAY_MS)) / 1000.0

    def settle(self, state: MemoryState) -> MemoryState:
        """Resolve the two face-up cards into matched or hidden."""
        if not state.is_processing():
            return state
        target = CardState.MATCHED if self._face_up_match(state) else CardState.HIDDEN
        flipped = set(state.face_up)
        cards = tuple(
            replace(card, state=target) if card.id in flipped else card
            for card in state.cards
        )
        return replace(state, cards=cards, face_up=())

    def is_terminal(self, state: MemoryState) -> bool:
        return bool(state.cards) and all(card.state is CardState.MATCHED for card in state.cards)

    def outcome(self, state: MemoryState) -> GameOutcome:
        if not self.is_terminal(state):
            raise ValueError("outcome() is only available for solved boards.")
        return GameOutcome(
            success=True,
            termination_reason=TerminationReason.SOLVED,
            stats={"pairs": len(state.cards) // 2, "moves": state.move_count},
        )

    def move_count(self, state: MemoryState) -> int:
        return state.move_count

    def snapshot(self, state: MemoryState) -> dict[str, Any]:
        """Hidden cards do not leak their symbol."""
        return {
            "cards": [
                {
                    "id": card.id,
                    "state": card.state.value,
                    "symbol": None if card.state is CardState.HIDDEN else card.symbol,
                }
                for card in state.cards
            ],
            "pairs_total": len(state.cards) // 2,
            "pairs_matched": state.matched_count() // 2,
            "is_processing": state.is_processing(),
        }

    def parse_move(self, data: Mapping[str, Any]) -> FlipCard:
        return move_from_dict(data)  # type: ignore[return-value]

    def _face_up_match(self, state: MemoryState) -> bool:
        first, second = (state.card(card_id) for card_id in state.face_up[:2])
        return first is not None and second is not None and first.pair_id == second.pair_id

    def _build(self, seed: int, symbols: tuple[str, ...], pair_ids: list[int]) -> MemoryState:
        cards = tuple(
            Card(id=position, symbol=symbols[pair_id], pair_id=pair_id)
            for position, pair_id in enumerate(pair_ids)
        )
        return MemoryState(seed=seed, cards=cards)
