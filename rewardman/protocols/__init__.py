"""Rewardman protocols."""

from rewardman.protocols.rewards import (
    CatalogEntry,
    ExpiryProjection,
    PointsSummary,
)
from rewardman.protocols.store import RewardsStore

__all__ = [
    # Storage
    "RewardsStore",
    # Value objects
    "CatalogEntry",
    "ExpiryProjection",
    "PointsSummary",
]
