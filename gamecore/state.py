"""Conventions for immutable board snapshots."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from .serialize import digest, to_serializable


@dataclass(frozen=True)
class BoardState:
    """Base immutable board snapshot.

    Every accepted move produces a new snapshot; a rejected move hands back
    the very same object, so callers can detect a no-op with ``is``.
    """

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable dictionary."""
        return to_serializable(self)

    def state_digest(self) -> str:
        """Return a deterministic digest for event logs."""
        return digest(self.to_dict())
