from .trending import TrendingService

__all__ = ["TrendingService"]
