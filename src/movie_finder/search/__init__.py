from .debounce import DEFAULT_DELAY, Debouncer
from .session import MovieCatalog, OutcomeListener, SearchSession

__all__ = ["DEFAULT_DELAY", "Debouncer", "MovieCatalog", "OutcomeListener", "SearchSession"]
