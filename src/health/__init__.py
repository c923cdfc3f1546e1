"""Source health tracking."""

from .tracker import HealthTracker

__all__ = ["HealthTracker"]
