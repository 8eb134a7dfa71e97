"""
Rewardman configuration.

Usage in settings.py:
    REWARDMAN = {
        "POINTS_VALIDITY_MONTHS": 12,
        "VOUCHER_VALIDITY_DAYS": 30,
        "TIER_SILVER_MIN_Q": 5_000_000,
    }
"""

from dataclasses import dataclass
from typing import Any

from django.conf import settings


@dataclass
class RewardmanSettings:
    """Rewardman configuration settings."""

    # Storage port implementation (dotted path)
    STORE_BACKEND: str = "rewardman.adapters.django_store.DjangoRewardsStore"

    # Earned points expire this many calendar months after they are earned
    POINTS_VALIDITY_MONTHS: int = 12

    # Default voucher lifetime (catalog entries may override)
    VOUCHER_VALIDITY_DAYS: int = 30

    # Tier thresholds in cents; a spend must be strictly above the floor
    TIER_SILVER_MIN_Q: int = 5_000_000
    TIER_GOLD_MIN_Q: int = 20_000_000

    # Trailing window for rolling spend
    ROLLING_SPEND_DAYS: int = 366

    # Reminder offsets consumed by the notification layer
    EXPIRY_REMINDER_DAYS: tuple = (30, 14, 7, 1)

    # List of catalog dicts; None means the built-in catalog
    VOUCHER_CATALOG: list | None = None


def get_rewardman_settings() -> RewardmanSettings:
    """Load settings from Django settings."""
    user_settings: dict[str, Any] = getattr(settings, "REWARDMAN", {})
    return RewardmanSettings(**user_settings)


class _LazySettings:
    """Lazy proxy that re-reads settings on every attribute access."""

    def __getattr__(self, name):
        return getattr(get_rewardman_settings(), name)


rewardman_settings = _LazySettings()
