"""Tier calculator — membership tier from rolling 12-month spend."""

import logging
from datetime import datetime, timedelta

from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.models import Tier, TierStatus
from rewardman.signals import send_on_commit, tier_changed
from rewardman.utils import get_default_store

logger = logging.getLogger(__name__)


class TierCalculator:
    """
    Derives bronze/silver/gold from spend, not points.

    The displayed tier is the last snapshot written by ``recompute()``,
    which an external scheduler runs quarterly. Downgrades move one level
    per review at most.
    """

    def __init__(self, store=None):
        self.store = store or get_default_store()

    @staticmethod
    def tier_for(spend_q: int) -> str:
        """Map spend (cents) to a tier. Thresholds belong to the lower tier."""
        if spend_q > rewardman_settings.TIER_GOLD_MIN_Q:
            return Tier.GOLD.value
        if spend_q > rewardman_settings.TIER_SILVER_MIN_Q:
            return Tier.SILVER.value
        return Tier.BRONZE.value

    def rolling_spend(self, user_ref: str, as_of: datetime | None = None) -> int:
        """Qualifying purchase value (cents) in the trailing window ending at ``as_of``."""
        as_of = as_of or timezone.now()
        window_start = as_of - timedelta(days=rewardman_settings.ROLLING_SPEND_DAYS)
        return self.store.purchase_spend(user_ref, window_start, as_of)

    def current(self, user_ref: str) -> str:
        """Last computed tier; bronze before the first review."""
        status = self.store.latest_tier_status(user_ref)
        return status.tier if status else Tier.BRONZE.value

    def recompute(self, user_ref: str, as_of: datetime | None = None) -> TierStatus:
        """Write a new snapshot for the user."""
        as_of = as_of or timezone.now()

        with self.store.user_lock(user_ref):
            spend = self.rolling_spend(user_ref, as_of)
            computed = self.tier_for(spend)

            previous = self.store.latest_tier_status(user_ref)
            previous_tier = previous.tier if previous else ""

            tier = computed
            if previous and Tier.rank(computed) < Tier.rank(previous_tier) - 1:
                # One step down per review
                tier = Tier.values[Tier.rank(previous_tier) - 1]

            status = self.store.add_tier_status(
                user_ref=user_ref,
                tier=tier,
                previous_tier=previous_tier,
                rolling_spend_q=spend,
                computed_at=as_of,
            )

        if tier != (previous_tier or Tier.BRONZE.value):
            logger.info("Tier %s: %s -> %s", user_ref, previous_tier or "none", tier)
            send_on_commit(tier_changed, TierStatus, status=status)
        return status

    def recompute_all(self, as_of: datetime | None = None) -> int:
        """Review every user with ledger activity. Returns how many."""
        as_of = as_of or timezone.now()
        count = 0
        for user_ref in self.store.user_refs():
            self.recompute(user_ref, as_of)
            count += 1
        logger.info("Tier review completed for %d users", count)
        return count
