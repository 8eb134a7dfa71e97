"""Voucher engine — redeem points into vouchers and apply them to orders."""

import logging
from datetime import datetime, timedelta

from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.exceptions import (
    CatalogEntryNotFound,
    InsufficientPoints,
    InvalidStateTransition,
    MinimumOrderNotMet,
    TierNotEligible,
    VoucherExpired,
    VoucherNotActive,
    VoucherNotFound,
)
from rewardman.models import EntryKind, Tier, Voucher, VoucherStatus
from rewardman.protocols import CatalogEntry
from rewardman.services.expiry import ExpiryScheduler
from rewardman.services.ledger import PointsLedger
from rewardman.services.tiers import TierCalculator
from rewardman.signals import send_on_commit, voucher_redeemed, voucher_status_changed
from rewardman.utils import get_default_store

logger = logging.getLogger(__name__)


# Built-in catalog (cents). Larger vouchers require an order of at least face value.
_DEFAULT_CATALOG = [
    {
        "id": "voucher-500",
        "title": "S$500 Voucher",
        "face_value_q": 50_000,
        "points_cost": 20_000,
        "minimum_order_q": 0,
    },
    {
        "id": "voucher-1500",
        "title": "S$1,500 Voucher",
        "face_value_q": 150_000,
        "points_cost": 50_000,
        "minimum_order_q": 150_000,
    },
]


class VoucherEngine:
    """
    Converts points into single-use vouchers and tracks their lifecycle.

    ``redeem`` and ``apply_to_order`` each run as one transaction under the
    user's lock. Status moves only active -> used | expired | cancelled.
    """

    def __init__(
        self,
        store=None,
        ledger: PointsLedger | None = None,
        tiers: TierCalculator | None = None,
        scheduler: ExpiryScheduler | None = None,
    ):
        self.store = store or get_default_store()
        self.ledger = ledger or PointsLedger(self.store)
        self.tiers = tiers or TierCalculator(self.store)
        self.scheduler = scheduler or ExpiryScheduler(self.store, self.ledger)

    # ======================================================================
    # Catalog
    # ======================================================================

    def catalog(self) -> list[CatalogEntry]:
        """Redeemable vouchers, from REWARDMAN["VOUCHER_CATALOG"] or built-in."""
        items = rewardman_settings.VOUCHER_CATALOG or _DEFAULT_CATALOG
        validity_days = rewardman_settings.VOUCHER_VALIDITY_DAYS
        return [CatalogEntry(**{"validity_days": validity_days, **item}) for item in items]

    def catalog_entry(self, catalog_ref: str) -> CatalogEntry:
        for entry in self.catalog():
            if entry.id == catalog_ref:
                return entry
        raise CatalogEntryNotFound(catalog_ref=catalog_ref)

    # ======================================================================
    # Lifecycle
    # ======================================================================

    def redeem(self, user_ref: str, catalog_ref: str, *, now: datetime | None = None) -> Voucher:
        """
        Spend points on a catalog voucher.

        Points already due to expire are written off first, so they cannot
        be spent. A backdated ``now`` may only spend what every later
        balance can also afford. The ledger debit and the voucher are
        created together or not at all.

        Raises:
            CatalogEntryNotFound: Unknown catalog id
            InsufficientPoints: Balance below the points cost
            TierNotEligible: Member tier below the entry's minimum
        """
        item = self.catalog_entry(catalog_ref)
        now = now or timezone.now()

        with self.store.user_lock(user_ref):
            self.scheduler.materialize_expiry(user_ref, as_of=now)

            balance = self.ledger.spendable_as_of(user_ref, now)
            if balance < item.points_cost:
                raise InsufficientPoints(
                    available=balance,
                    requested=item.points_cost,
                )

            tier = self.tiers.current(user_ref)
            if Tier.rank(tier) < Tier.rank(item.minimum_tier):
                raise TierNotEligible(tier=tier, required=item.minimum_tier)

            voucher = self.store.add_voucher(
                user_ref=user_ref,
                catalog_ref=item.id,
                title=item.title,
                face_value_q=item.face_value_q,
                points_cost=item.points_cost,
                minimum_order_q=item.minimum_order_q,
                status=VoucherStatus.ACTIVE,
                issued_at=now,
                expires_at=now + timedelta(days=item.validity_days),
            )
            self.ledger.append(
                user_ref,
                EntryKind.REDEMPTION,
                -item.points_cost,
                occurred_at=now,
                voucher=voucher,
                description=f"Redeemed {item.title}",
            )

        logger.info("Voucher %s redeemed by %s for %d pts", voucher.code, user_ref, item.points_cost)
        send_on_commit(voucher_redeemed, Voucher, voucher=voucher)
        return voucher

    def apply_to_order(
        self,
        voucher_id,
        order_ref: str,
        order_subtotal_q: int,
        *,
        now: datetime | None = None,
    ) -> Voucher:
        """
        Mark the voucher used on an order.

        One voucher per call; stacking is the caller's decision.

        Raises:
            VoucherNotActive: Already used, expired or cancelled
            VoucherExpired: Past expires_at (the voucher is marked expired)
            MinimumOrderNotMet: Subtotal below the voucher's minimum
        """
        now = now or timezone.now()
        voucher = self.get(voucher_id)
        expired = False

        with self.store.user_lock(voucher.user_ref):
            voucher = self.get(voucher_id)
            if voucher.status != VoucherStatus.ACTIVE:
                raise VoucherNotActive(voucher_id=str(voucher.pk), status=voucher.status)

            if now > voucher.expires_at:
                expired = self.store.swap_voucher_status(
                    voucher.pk, VoucherStatus.ACTIVE, VoucherStatus.EXPIRED
                )
                if not expired:
                    raise VoucherNotActive(voucher_id=str(voucher.pk))
            else:
                if order_subtotal_q < voucher.minimum_order_q:
                    raise MinimumOrderNotMet(
                        minimum_order_q=voucher.minimum_order_q,
                        order_subtotal_q=order_subtotal_q,
                    )
                used = self.store.swap_voucher_status(
                    voucher.pk,
                    VoucherStatus.ACTIVE,
                    VoucherStatus.USED,
                    used_at=now,
                    used_in_order_ref=order_ref,
                )
                if not used:
                    raise VoucherNotActive(voucher_id=str(voucher.pk))

        voucher = self.get(voucher_id)
        send_on_commit(
            voucher_status_changed, Voucher, voucher=voucher, old_status=VoucherStatus.ACTIVE.value
        )
        if expired:
            logger.warning("Voucher %s applied after expiry", voucher.code)
            raise VoucherExpired(voucher_id=str(voucher.pk), expires_at=voucher.expires_at.isoformat())

        logger.info("Voucher %s used on order %s", voucher.code, order_ref)
        return voucher

    def cancel(self, voucher_id, *, refund: bool = False, now: datetime | None = None) -> Voucher:
        """
        Cancel an active voucher.

        Points are returned as a correction entry only when ``refund``.

        Raises:
            InvalidStateTransition: Voucher already in a terminal state
        """
        now = now or timezone.now()
        voucher = self.get(voucher_id)

        with self.store.user_lock(voucher.user_ref):
            voucher = self.get(voucher_id)
            cancelled = not voucher.is_terminal and self.store.swap_voucher_status(
                voucher.pk,
                VoucherStatus.ACTIVE,
                VoucherStatus.CANCELLED,
                cancelled_at=now,
            )
            if not cancelled:
                raise InvalidStateTransition(
                    voucher_id=str(voucher.pk),
                    status=voucher.status,
                    target=VoucherStatus.CANCELLED.value,
                )
            if refund:
                self.ledger.append(
                    voucher.user_ref,
                    EntryKind.CORRECTION,
                    voucher.points_cost,
                    occurred_at=now,
                    voucher=voucher,
                    description=f"Refund for cancelled voucher {voucher.code}",
                )

        voucher = self.get(voucher_id)
        logger.info("Voucher %s cancelled (refund=%s)", voucher.code, refund)
        send_on_commit(
            voucher_status_changed, Voucher, voucher=voucher, old_status=VoucherStatus.ACTIVE.value
        )
        return voucher

    def expire_stale_vouchers(self, as_of: datetime | None = None) -> int:
        """
        Expire every active voucher with ``expires_at <= as_of``.

        Safe to re-run: already-expired vouchers are not touched. No points
        are refunded.
        """
        count = self.store.expire_vouchers(as_of or timezone.now())
        if count:
            logger.info("Expired %d stale vouchers", count)
        return count

    # ======================================================================
    # Queries
    # ======================================================================

    def get(self, voucher_id) -> Voucher:
        voucher = self.store.get_voucher(voucher_id)
        if voucher is None:
            raise VoucherNotFound(voucher_id=str(voucher_id))
        return voucher

    def vouchers_for(self, user_ref: str, status: str | None = None) -> list[Voucher]:
        return self.store.vouchers(user_ref, status)
