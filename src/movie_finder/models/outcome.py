from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field

from movie_finder.models.movie import Movie


class SearchStatus(str, Enum):
    """States of a search session."""

    IDLE = "idle"
    LOADING = "loading"
    SUCCESS = "success"
    ERROR = "error"


class CatalogErrorKind(str, Enum):
    """Failure reasons reported by the catalog client."""

    AUTH = "auth"
    RATE_LIMITED = "rate_limited"
    SERVER = "server"
    HTTP = "http"
    NETWORK = "network"
    TIMEOUT = "timeout"
    EMPTY_RESULT = "empty_result"
    UNKNOWN = "unknown"


class SearchOutcome(BaseModel):
    """The visible result of the most recently issued search query."""

    status: SearchStatus
    query: str | None = None
    movies: list[Movie] = Field(default_factory=list)
    error: CatalogErrorKind | None = None
    message: str | None = None

    model_config = {"frozen": True}

    @classmethod
    def idle(cls) -> SearchOutcome:
        return cls(status=SearchStatus.IDLE)

    @classmethod
    def loading(cls, query: str) -> SearchOutcome:
        return cls(status=SearchStatus.LOADING, query=query)

    @classmethod
    def success(cls, query: str, movies: list[Movie]) -> SearchOutcome:
        return cls(status=SearchStatus.SUCCESS, query=query, movies=list(movies))

    @classmethod
    def failure(cls, query: str, kind: CatalogErrorKind, message: str) -> SearchOutcome:
        return cls(status=SearchStatus.ERROR, query=query, error=kind, message=message)

    @property
    def is_loading(self) -> bool:
        return self.status is SearchStatus.LOADING


__all__ = ["CatalogErrorKind", "SearchOutcome", "SearchStatus"]
