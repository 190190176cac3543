"""Outcome models for terminal boards and finished sessions."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Self

from .serialize import to_serializable


class TerminationReason(str, Enum):
    """Standardized reasons a board became terminal."""

    SOLVED = "solved"
    MISTAKE_LIMIT = "mistake_limit"


@dataclass(frozen=True)
class GameOutcome:
    """Terminal signal computed by a game from its board alone."""

    success: bool
    termination_reason: TerminationReason
    stats: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class AttemptReport:
    """Payload sent to the remote service when an attempt finishes."""

    success: bool
    moves: int
    duration_ms: int
    score: int | None = None
    client_date: str | None = None

    def to_payload(self) -> dict[str, Any]:
        """Return the wire body for the finish-attempt call."""
        payload: dict[str, Any] = {
            "success": self.success,
            "moves": self.moves,
            "durationMs": self.duration_ms,
        }
        if self.score is not None:
            payload["score"] = self.score
        if self.client_date is not None:
            payload["clientDate"] = self.client_date
        return payload


@dataclass(frozen=True)
class SessionResult:
    """Structured result for one finished session."""

    game_id: str
    game_name: str
    success: bool
    termination_reason: TerminationReason
    move_count: int
    duration_ms: int
    score: int | None = None
    attempt_id: str | None = None
    stats: dict[str, Any] = field(default_factory=dict)
    final_state_digest: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable result object."""
        return {
            "game_id": self.game_id,
            "game_name": self.game_name,
            "success": self.success,
            "termination_reason": self.termination_reason.value,
            "move_count": self.move_count,
            "duration_ms": self.duration_ms,
            "score": self.score,
            "attempt_id": self.attempt_id,
            "stats": to_serializable(self.stats),
            "final_state_digest": self.final_state_digest,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Build a result from serialized data."""
        return cls(
            game_id=str(data["game_id"]),
            game_name=str(data["game_name"]),
            success=bool(data["success"]),
            termination_reason=TerminationReason(str(data["termination_reason"])),
            move_count=int(data.get("move_count", 0)),
            duration_ms=int(data.get("duration_ms", 0)),
            score=data.get("score"),
            attempt_id=data.get("attempt_id"),
            stats=dict(data.get("stats", {})),
            final_state_digest=data.get("final_state_digest"),
        )
