"""Movie discovery with debounced catalog search and trending search tallies."""

__version__ = "0.1.0"

__all__ = ["__version__"]
