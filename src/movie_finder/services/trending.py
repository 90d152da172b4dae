"""State behind the trending panel."""

from __future__ import annotations

import logging

from movie_finder.models import TrendEntry
from movie_finder.trending.store import DEFAULT_TRENDING_LIMIT, TallyStore

logger = logging.getLogger(__name__)


class TrendingService:
    """Loads the top search terms and remembers what the panel should show."""

    def __init__(self, store: TallyStore, *, limit: int = DEFAULT_TRENDING_LIMIT) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        self._store = store
        self._limit = limit
        self._entries: list[TrendEntry] = []
        self._loading = False
        self._error: str | None = None

    @property
    def entries(self) -> list[TrendEntry]:
        return list(self._entries)

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def error(self) -> str | None:
        return self._error

    async def refresh(self) -> list[TrendEntry]:
        self._loading = True
        self._error = None
        try:
            entries = await self._store.top_trending(self._limit)
        except Exception as exc:  # pragma: no cover - stores absorb their own failures
            logger.error(f"Error getting trending movies: {exc}")
            self._error = "Failed to load trending searches."
            entries = []
        finally:
            self._loading = False

        self._entries = entries[: self._limit]
        return self.entries


__all__ = ["TrendingService"]
