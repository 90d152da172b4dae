"""Search-term tallies backing the trending panel."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Protocol

import httpx
from pydantic import ValidationError

from movie_finder.clients.appwrite import (
    AppwriteClient,
    query_equal,
    query_limit,
    query_order_desc,
)
from movie_finder.models import Movie, TrendEntry

logger = logging.getLogger(__name__)

DEFAULT_TRENDING_LIMIT = 5


class TallyStore(Protocol):
    """Counter keyed by search term with a top-N read.

    Neither operation raises: store failures are logged and absorbed so that
    a broken tally never affects search results.
    """

    async def increment(self, term: str, movie: Movie | None) -> None:
        """Add one to the tally for ``term``, creating it on first use."""

    async def top_trending(self, limit: int = DEFAULT_TRENDING_LIMIT) -> list[TrendEntry]:
        """Return up to ``limit`` entries, highest count first."""


class AppwriteTallyStore:
    """Tally store kept as documents in an Appwrite collection."""

    def __init__(
        self,
        client: AppwriteClient,
        *,
        database_id: str,
        collection_id: str,
        image_base_url: str,
    ) -> None:
        self._client = client
        self._database_id = database_id
        self._collection_id = collection_id
        self._image_base_url = image_base_url

    async def increment(self, term: str, movie: Movie | None) -> None:
        try:
            found = await self._client.list_documents(
                self._database_id,
                self._collection_id,
                [query_equal("searchTerm", term)],
            )
            documents = _documents(found)
            if documents:
                existing = documents[0]
                await self._client.update_document(
                    self._database_id,
                    self._collection_id,
                    existing["$id"],
                    {"count": int(existing.get("count", 0)) + 1},
                )
                logger.debug(f"[TALLY] '{term}' -> {int(existing.get('count', 0)) + 1}")
            else:
                await self._client.create_document(
                    self._database_id,
                    self._collection_id,
                    _new_entry_data(term, movie, self._image_base_url),
                )
                logger.debug(f"[TALLY] '{term}' created")
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as exc:
            logger.error(f"Error updating search count for '{term}': {exc}")

    async def top_trending(self, limit: int = DEFAULT_TRENDING_LIMIT) -> list[TrendEntry]:
        try:
            result = await self._client.list_documents(
                self._database_id,
                self._collection_id,
                [
                    query_order_desc("count"),
                    query_order_desc("$updatedAt"),
                    query_limit(limit),
                ],
            )
            entries = [TrendEntry.model_validate(doc) for doc in _documents(result)]
        except (httpx.HTTPError, ValidationError, ValueError) as exc:
            logger.error(f"Error getting trending movies: {exc}")
            return []
        # Re-applied locally so a misbehaving store cannot break the contract
        return _rank(entries)[:limit]

    async def close(self) -> None:
        await self._client.close()


class InMemoryTallyStore:
    """Process-local tally store for offline use and tests."""

    def __init__(self, *, image_base_url: str = "") -> None:
        self._image_base_url = image_base_url
        self._entries: dict[str, TrendEntry] = {}
        # Monotonic touch counter; clock resolution is too coarse for tie-breaks
        self._touched: dict[str, int] = {}
        self._sequence = 0

    async def increment(self, term: str, movie: Movie | None) -> None:
        self._sequence += 1
        self._touched[term] = self._sequence

        existing = self._entries.get(term)
        if existing is not None:
            self._entries[term] = existing.model_copy(
                update={"count": existing.count + 1, "updated_at": _now()}
            )
            return

        data = _new_entry_data(term, movie, self._image_base_url)
        self._entries[term] = TrendEntry(
            search_term=term,
            count=data["count"],
            movie_id=data["movie_id"],
            poster_url=data["poster_url"],
            document_id=f"local-{len(self._entries) + 1}",
            updated_at=_now(),
        )

    async def top_trending(self, limit: int = DEFAULT_TRENDING_LIMIT) -> list[TrendEntry]:
        ranked = sorted(
            self._entries.values(),
            key=lambda entry: (entry.count, self._touched[entry.search_term]),
            reverse=True,
        )
        return ranked[:limit]

    async def close(self) -> None:
        return None


def _new_entry_data(term: str, movie: Movie | None, image_base_url: str) -> dict:
    return {
        "searchTerm": term,
        "count": 1,
        "movie_id": movie.id if movie else None,
        "poster_url": movie.poster_url(image_base_url) if movie else None,
    }


def _documents(payload: object) -> list[dict]:
    if not isinstance(payload, dict):
        raise ValueError(f"unexpected list response: {type(payload).__name__}")
    documents = payload.get("documents", [])
    if not isinstance(documents, list) or not all(isinstance(doc, dict) for doc in documents):
        raise ValueError("unexpected documents in list response")
    return documents


def _rank(entries: list[TrendEntry]) -> list[TrendEntry]:
    # Count descending, ties broken by most recent update
    oldest = datetime.min.replace(tzinfo=timezone.utc)
    return sorted(
        entries,
        key=lambda entry: (entry.count, _aware(entry.updated_at) or oldest),
        reverse=True,
    )


def _aware(value: datetime | None) -> datetime | None:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=timezone.utc)


def _now() -> datetime:
    return datetime.now(timezone.utc)


__all__ = [
    "AppwriteTallyStore",
    "DEFAULT_TRENDING_LIMIT",
    "InMemoryTallyStore",
    "TallyStore",
]
