"""State and enums for the matching-pairs memory game."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from gamecore.state import BoardState


class CardState(str, Enum):
    """Visibility of a card on the table."""

    HIDDEN = "hidden"
    VISIBLE = "visible"
    MATCHED = "matched"


@dataclass(frozen=True)
class Card:
    """One playable card."""

    id: int
    symbol: str
    pair_id: int
    state: CardState = CardState.HIDDEN


@dataclass(frozen=True)
class MemoryState(BoardState):
    """Immutable memory board."""

    seed: int
    cards: tuple[Card, ...]
    face_up: tuple[int, ...] = ()
    move_count: int = 0

    def card(self, card_id: int) -> Card | None:
        """Return the card with ``card_id`` or None."""
        for card in self.cards:
            if card.id == card_id:
                return card
        return None

    def matched_count(self) -> int:
        """Count cards already resolved as pairs."""
        return sum(1 for card in self.cards if card.state is CardState.MATCHED)

    def is_processing(self) -> bool:
        """Return True while two face-up cards await resolution."""
        return len(self.face_up) >= 2
