from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field, field_validator


class Movie(BaseModel):
    """Snapshot of a catalog movie as returned by discover and search."""

    id: int
    title: str
    poster_path: str | None = None
    overview: str | None = None
    release_date: str | None = None
    vote_average: float | None = Field(default=None, ge=0.0, le=10.0)
    original_language: str | None = None

    model_config = {
        "frozen": True,
        "extra": "ignore",
    }

    @field_validator("release_date", "poster_path", "overview", mode="before")
    @classmethod
    def _blank_to_none(cls, value: object) -> object:
        # The catalog sends "" for unknown release dates and missing overviews
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @property
    def year(self) -> int | None:
        """Release year parsed from the ISO release date, if any."""
        if not self.release_date:
            return None
        try:
            return date.fromisoformat(self.release_date).year
        except ValueError:
            return None

    def poster_url(self, image_base_url: str) -> str | None:
        if not self.poster_path:
            return None
        return f"{image_base_url}{self.poster_path}"


class TrendEntry(BaseModel):
    """Per-search-term tally kept in the document store."""

    search_term: str = Field(alias="searchTerm")
    count: int = Field(default=0, ge=0)
    movie_id: int | None = None
    poster_url: str | None = None
    document_id: str | None = Field(default=None, alias="$id")
    updated_at: datetime | None = Field(default=None, alias="$updatedAt")

    model_config = {
        "populate_by_name": True,
        "extra": "ignore",
    }


__all__ = ["Movie", "TrendEntry"]
