"""Achievement values and the FIFO presentation queue."""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Iterable, Mapping, Self

from .errors import PuzzleError, RemoteServiceError

if TYPE_CHECKING:
    from .attempts import AttemptClient

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Achievement:
    """Server-defined achievement unlocked by an attempt."""

    id: str
    title: str
    description: str | None = None
    icon: str | None = None
    points: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "icon": self.icon,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Self:
        """Parse one achievement; raises ValueError on missing id or title."""
        try:
            achievement_id = data["id"]
            title = data["title"]
        except KeyError as exc:
            raise ValueError(f"Achievement payload missing {exc.args[0]!r}") from exc
        try:
            points = int(data.get("points") or 0)
        except (TypeError, ValueError) as exc:
            raise ValueError(f"Achievement points must be an integer, got {data.get('points')!r}") from exc
        return cls(
            id=str(achievement_id),
            title=str(title),
            description=data.get("description"),
            icon=data.get("icon"),
            points=points,
        )


def parse_achievements(payload: Any) -> list[Achievement]:
    """Parse a check-achievements response into values, skipping bad entries."""
    if isinstance(payload, Mapping):
        payload = payload.get("achievements", payload.get("unlockedAchievements", []))
    if not isinstance(payload, list):
        raise RemoteServiceError("check_achievements", "expected a list of achievements")
    parsed = []
    for item in payload:
        if not isinstance(item, Mapping):
            logger.warning("Skipping malformed achievement entry: %r", item)
            continue
        try:
            parsed.append(Achievement.from_dict(item))
        except ValueError as exc:
            logger.warning("Skipping malformed achievement entry: %s", exc)
    return parsed


class AchievementQueue:
    """Present unlocked achievements one at a time in arrival order."""

    def __init__(self) -> None:
        self._items: deque[Achievement] = deque()
        self._seen: set[str] = set()

    def __len__(self) -> int:
        return len(self._items)

    @property
    def active(self) -> Achievement | None:
        return self._items[0] if self._items else None

    @property
    def pending(self) -> list[Achievement]:
        """Queued achievements behind the active one."""
        return list(self._items)[1:]

    def extend(self, achievements: Iterable[Achievement]) -> list[Achievement]:
        """Queue a batch and return what was added; repeats are dropped."""
        added: list[Achievement] = []
        for achievement in achievements:
            if achievement.id in self._seen:
                continue
            self._seen.add(achievement.id)
            self._items.append(achievement)
            added.append(achievement)
        return added

    def acknowledge(self, achievement_id: str | None = None) -> Achievement | None:
        """Dismiss the active achievement.

        An id that does not match the head is a stale acknowledgement and is
        ignored.
        """
        head = self.active
        if head is None:
            return None
        if achievement_id is not None and achievement_id != head.id:
            return None
        return self._items.popleft()

    def clear(self) -> None:
        self._items.clear()
        self._seen.clear()


class AchievementCoordinator:
    """Fetch the achievements unlocked by a finished attempt."""

    def __init__(self, client: "AttemptClient"):
        self.client = client

    async def check(self, attempt_id: str) -> list[Achievement]:
        """Return unlocked achievements; remote failures yield an empty list."""
        try:
            return await self.client.check_achievements(attempt_id)
        except PuzzleError as exc:
            logger.warning("Achievement check for attempt %s failed: %s", attempt_id, exc)
            return []
