"""In-memory puzzle session management for the local play API."""

from __future__ import annotations

import logging
from typing import Any

from gamecore.attempts import AttemptClient, HttpAttemptClient
from gamecore.env_utils import ClientConfig
from gamecore.game import PuzzleGame
from gamecore.session import PuzzleSession, SessionConfig
from memory.memory_game import MemoryGame
from net.net_game import NetGame
from sudoku.sudoku_game import SudokuGame

logger = logging.getLogger(__name__)

GAME_MEMORY = "memory"
GAME_NET = "net"
GAME_SUDOKU = "sudoku"
SUPPORTED_GAMES = {GAME_MEMORY, GAME_NET, GAME_SUDOKU}


def normalize_game(game: str | None) -> str:
    normalized = (game or GAME_MEMORY).strip().lower()
    if normalized not in SUPPORTED_GAMES:
        raise ValueError(f"Unsupported game '{game}'. Supported games: {sorted(SUPPORTED_GAMES)}")
    return normalized


def build_game(game_name: str, config: dict[str, Any] | None = None) -> PuzzleGame[Any, Any]:
    """Instantiate a game whose defaults carry the per-session config."""
    normalized = normalize_game(game_name)
    if normalized == GAME_MEMORY:
        return MemoryGame(default_config=config)
    if normalized == GAME_NET:
        return NetGame(default_config=config)
    return SudokuGame(default_config=config)


class SessionStore:
    """In-memory session dictionary keyed by session ID."""

    def __init__(self, client: AttemptClient | None = None, session_config: SessionConfig | None = None) -> None:
        self._sessions: dict[str, PuzzleSession] = {}
        self.client = client
        self.session_config = session_config or SessionConfig()

    @classmethod
    def from_env(cls) -> "SessionStore":
        """Build a store talking to the remote service configured in the environment."""
        client_config = ClientConfig.from_env()
        if client_config is None:
            logger.info("No remote API configured; sessions are local-only")
            return cls()
        logger.info("Remote attempt service at %s", client_config.base_url)
        return cls(client=HttpAttemptClient(client_config))

    async def create_session(self, *, game: str, seed: int | None, config: dict[str, Any] | None) -> PuzzleSession:
        session = PuzzleSession(
            build_game(game, dict(config or {})),
            client=self.client,
            config=self.session_config,
        )
        await session.reset(seed)
        self._sessions[session.session_id] = session
        return session

    def get(self, session_id: str) -> PuzzleSession:
        if session_id not in self._sessions:
            raise KeyError(session_id)
        return self._sessions[session_id]

    def all_events(self, session_id: str) -> list[dict[str, Any]]:
        session = self.get(session_id)
        return [event.to_dict() for event in session.events]

    async def close(self) -> None:
        """Cancel background work of every session."""
        for session in self._sessions.values():
            await session.aclose()
        self._sessions.clear()
