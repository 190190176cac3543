"""Pydantic request schemas for the puzzle session API."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CreateSessionRequest(BaseModel):
    """Request body for starting a new puzzle session."""

    game: str = "memory"
    seed: int | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class SubmitMoveRequest(BaseModel):
    """Request body for submitting a move."""

    move: dict[str, Any]


class ResetSessionRequest(BaseModel):
    """Optional body for play-again."""

    seed: int | None = None


class AcknowledgeAchievementRequest(BaseModel):
    """Dismiss the achievement currently on screen."""

    achievement_id: str | None = None
