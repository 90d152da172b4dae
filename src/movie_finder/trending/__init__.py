from .factory import build_tally_store
from .store import (
    DEFAULT_TRENDING_LIMIT,
    AppwriteTallyStore,
    InMemoryTallyStore,
    TallyStore,
)

__all__ = [
    "AppwriteTallyStore",
    "DEFAULT_TRENDING_LIMIT",
    "InMemoryTallyStore",
    "TallyStore",
    "build_tally_store",
]
