"""Structured exceptions used across the puzzle engine."""

from __future__ import annotations

from typing import Any


class PuzzleError(Exception):
    """Base class for engine-level exceptions."""

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serializable error payload."""
        return {"type": self.__class__.__name__, "message": str(self)}


class SessionConfigurationError(PuzzleError):
    """Raised when a session or game is configured incorrectly."""


class BoardLayoutError(PuzzleError):
    """Raised when a server-provided board layout cannot be used."""

    def __init__(self, game_name: str, reason: str):
        self.game_name = game_name
        self.reason = reason
        super().__init__(f"Invalid {game_name} layout: {reason}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload.update({"game": self.game_name, "reason": self.reason})
        return payload


class RemoteServiceError(PuzzleError):
    """Raised when the remote attempt service fails or answers with garbage."""

    def __init__(self, operation: str, message: str, status: int | None = None):
        self.operation = operation
        self.status = status
        super().__init__(f"{operation} failed: {message}")

    def to_dict(self) -> dict[str, Any]:
        payload = super().to_dict()
        payload["operation"] = self.operation
        if self.status is not None:
            payload["status"] = self.status
        return payload
