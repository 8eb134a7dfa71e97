"""
Rewardman public API.

CORE (essential):
    RewardsService.record_order(...)  - Credit a completed order
    RewardsService.vouchers.redeem()  - Spend points on a voucher
    RewardsService.summary(user_ref)  - Balance, tier, expiring points

CONVENIENCE (helpers):
    RewardsService.grant(...)         - Bonus/referral/achievement points
"""

from datetime import datetime

from django.utils import timezone

from rewardman.exceptions import ValidationError
from rewardman.models import EntryKind, PointsLedgerEntry, VoucherStatus
from rewardman.protocols import PointsSummary
from rewardman.services import (
    ExpiryScheduler,
    MissingPointsReconciler,
    PointsLedger,
    TierCalculator,
    VoucherEngine,
)
from rewardman.utils import get_default_store

_GRANT_KINDS = (EntryKind.BONUS, EntryKind.REFERRAL, EntryKind.ACHIEVEMENT)


class RewardsService:
    """
    All loyalty components wired over one store.

    Usage:
        rewards = RewardsService()
        rewards.record_order("USR-001", "ORD-42", order_value_q=125_000, points=1_250)
        voucher = rewards.vouchers.redeem("USR-001", "voucher-500")
        rewards.vouchers.apply_to_order(voucher.pk, "ORD-43", 40_000)
    """

    def __init__(self, store=None):
        self.store = store or get_default_store()
        self.ledger = PointsLedger(self.store)
        self.tiers = TierCalculator(self.store)
        self.expiry = ExpiryScheduler(self.store, self.ledger)
        self.vouchers = VoucherEngine(self.store, self.ledger, self.tiers, self.expiry)
        self.reconciler = MissingPointsReconciler(self.store, self.ledger)

    # ======================================================================
    # Inbound events
    # ======================================================================

    def record_order(
        self,
        user_ref: str,
        order_ref: str,
        order_value_q: int,
        points: int,
        *,
        occurred_at: datetime | None = None,
    ) -> PointsLedgerEntry:
        """Order-completion event from checkout."""
        return self.ledger.record_order(
            user_ref, order_ref, order_value_q, points, occurred_at=occurred_at
        )

    def grant(
        self,
        user_ref: str,
        kind: str,
        points: int,
        description: str = "",
        *,
        occurred_at: datetime | None = None,
        created_by: str = "",
    ) -> PointsLedgerEntry:
        """Credit bonus, referral or achievement points."""
        if kind not in _GRANT_KINDS:
            raise ValidationError(message=f"Cannot grant '{kind}' points", kind=kind)
        return self.ledger.append(
            user_ref,
            kind,
            points,
            occurred_at=occurred_at,
            description=description,
            created_by=created_by,
        )

    # ======================================================================
    # Outbound queries
    # ======================================================================

    def summary(self, user_ref: str, *, now: datetime | None = None) -> PointsSummary:
        now = now or timezone.now()
        return PointsSummary(
            user_ref=user_ref,
            balance=self.ledger.balance_as_of(user_ref, now),
            lifetime_points=self.ledger.lifetime_points(user_ref),
            tier=self.tiers.current(user_ref),
            expiring_soon=self.expiry.expiring_total(user_ref, 30, now=now),
            active_vouchers=len(self.vouchers.vouchers_for(user_ref, VoucherStatus.ACTIVE)),
        )
