"""In-memory store of confirmed host overrides."""

from .store import RouteStateStore

__all__ = ["RouteStateStore"]
