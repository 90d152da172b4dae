from .movie import Movie, TrendEntry
from .outcome import CatalogErrorKind, SearchOutcome, SearchStatus

__all__ = ["CatalogErrorKind", "Movie", "SearchOutcome", "SearchStatus", "TrendEntry"]
