"""Shared puzzle engine: boards, sessions and the remote attempt service."""

from .achievements import Achievement, AchievementCoordinator, AchievementQueue, parse_achievements
from .attempts import AttemptClient, HttpAttemptClient, PuzzleLayout
from .clock import SessionClock
from .env_utils import ClientConfig
from .errors import BoardLayoutError, PuzzleError, RemoteServiceError, SessionConfigurationError
from .events import EventType, SessionEvent, write_jsonl
from .game import PuzzleGame
from .move import Move
from .result import AttemptReport, GameOutcome, SessionResult, TerminationReason
from .session import PuzzleSession, SessionConfig, SessionGuard, SessionPhase
from .state import BoardState

__all__ = [
    "Achievement",
    "AchievementCoordinator",
    "AchievementQueue",
    "AttemptClient",
    "AttemptReport",
    "BoardLayoutError",
    "BoardState",
    "ClientConfig",
    "EventType",
    "GameOutcome",
    "HttpAttemptClient",
    "Move",
    "PuzzleError",
    "PuzzleGame",
    "PuzzleLayout",
    "PuzzleSession",
    "RemoteServiceError",
    "SessionClock",
    "SessionConfig",
    "SessionConfigurationError",
    "SessionEvent",
    "SessionGuard",
    "SessionPhase",
    "SessionResult",
    "TerminationReason",
    "parse_achievements",
    "write_jsonl",
]
