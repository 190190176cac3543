"""Move definitions for the memory game."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from gamecore.move import Move


class MoveType(str, Enum):
    """Supported memory move discriminators."""

    FLIP_CARD = "FlipCard"


@dataclass(frozen=True)
class FlipCard(Move):
    """Turn one hidden card face up."""

    card_id: int
    move_type = MoveType.FLIP_CARD.value

    def __post_init__(self) -> None:
        if isinstance(self.card_id, bool):
            raise ValueError("FlipCard.card_id must be an integer.")
        object.__setattr__(self, "card_id", int(self.card_id))


def move_from_dict(data: Mapping[str, Any]) -> Move:
    """Parse a memory move from JSON payload."""
    move_type = data.get("type") or data.get("move_type")
    if move_type == MoveType.FLIP_CARD.value:
        if "card_id" not in data and "cardId" in data:
            translated = dict(data)
            translated["card_id"] = translated.pop("cardId")
            return FlipCard.from_dict(translated)
        return FlipCard.from_dict(data)
    raise ValueError(f"Unknown memory move type: {move_type!r}")
