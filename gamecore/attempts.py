"""Remote attempt service clients."""

from __future__ import annotations

import asyncio
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Mapping

from .achievements import Achievement, parse_achievements
from .env_utils import ClientConfig
from .errors import RemoteServiceError
from .http_utils import bearer_headers, post_json
from .result import AttemptReport

logger = logging.getLogger(__name__)

# Path segment of the create-puzzle endpoint per game name.
PUZZLE_ROUTES = {"memory": "memory", "net": "net", "sudoku": "sudoku"}


@dataclass(frozen=True)
class PuzzleLayout:
    """Board created by the remote service."""

    puzzle_id: str
    layout: dict[str, Any] = field(default_factory=dict)


class AttemptClient(ABC):
    """Async interface to the remote puzzle/attempt/achievement service."""

    @abstractmethod
    async def create_puzzle(self, game_name: str, layout_key: str, params: Mapping[str, Any]) -> PuzzleLayout:
        """Create a puzzle and return its id and board layout."""

    @abstractmethod
    async def start_attempt(self, puzzle_id: str, game_type: str) -> str:
        """Open an attempt and return its id."""

    @abstractmethod
    async def finish_attempt(self, attempt_id: str, report: AttemptReport) -> None:
        """Record the final result of an attempt."""

    @abstractmethod
    async def check_achievements(self, attempt_id: str) -> list[Achievement]:
        """Return achievements unlocked by a finished attempt."""


class HttpAttemptClient(AttemptClient):
    """JSON-over-HTTP client with bearer auth; blocking calls run in a thread."""

    def __init__(self, config: ClientConfig):
        self.config = config

    async def _post(self, operation: str, path: str, payload: dict[str, Any]) -> Any:
        url = f"{self.config.base_url}{path}"
        logger.debug("POST %s (%s)", url, operation)
        return await asyncio.to_thread(
            post_json,
            url,
            payload,
            bearer_headers(self.config.token),
            self.config.timeout_sec,
            operation,
        )

    async def create_puzzle(self, game_name: str, layout_key: str, params: Mapping[str, Any]) -> PuzzleLayout:
        route = PUZZLE_ROUTES.get(game_name)
        if route is None:
            raise RemoteServiceError("create_puzzle", f"no puzzle route for game {game_name!r}")
        data = await self._post("create_puzzle", f"/puzzles/{route}", dict(params))
        if not isinstance(data, Mapping):
            raise RemoteServiceError("create_puzzle", "expected a JSON object")
        puzzle = data.get("puzzle")
        if not isinstance(puzzle, Mapping) or not puzzle.get("id"):
            raise RemoteServiceError("create_puzzle", "response has no puzzle id")
        layout = data.get(layout_key)
        return PuzzleLayout(
            puzzle_id=str(puzzle["id"]),
            layout=dict(layout) if isinstance(layout, Mapping) else {},
        )

    async def start_attempt(self, puzzle_id: str, game_type: str) -> str:
        data = await self._post("start_attempt", "/attempts/start", {"puzzleId": puzzle_id, "gameType": game_type})
        if not isinstance(data, Mapping) or not data.get("id"):
            raise RemoteServiceError("start_attempt", "response has no attempt id")
        return str(data["id"])

    async def finish_attempt(self, attempt_id: str, report: AttemptReport) -> None:
        await self._post("finish_attempt", f"/attempts/{attempt_id}/finish", report.to_payload())

    async def check_achievements(self, attempt_id: str) -> list[Achievement]:
        data = await self._post("check_achievements", f"/achievements/check/{attempt_id}", {})
        return parse_achievements(data)
