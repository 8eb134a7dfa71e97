"""
Points ledger service.

Entries are append-only. Balance is a sum over entries, never a stored
counter. Which earning entry a spend draws down is not stored either:
``lots()`` replays the ledger and attributes every negative movement to
the open lots that expire first (FIFO by expiry date).
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from itertools import groupby
from operator import attrgetter
from typing import Iterator

from dateutil.relativedelta import relativedelta
from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.exceptions import ValidationError
from rewardman.models import (
    EARNING_KINDS,
    LOT_KINDS,
    SPENDING_KINDS,
    EntryKind,
    PointsLedgerEntry,
)
from rewardman.signals import points_appended, send_on_commit
from rewardman.utils import get_default_store

logger = logging.getLogger(__name__)


@dataclass
class Lot:
    """Unspent portion of one positive earning entry."""

    entry: PointsLedgerEntry
    remaining: int
    offset: bool = False

    @property
    def expires_at(self) -> datetime:
        return self.entry.expires_at

    @property
    def earned_at(self) -> datetime:
        return self.entry.occurred_at

    @property
    def source(self) -> str:
        if self.entry.source_order_ref:
            return f"order:{self.entry.source_order_ref}"
        return self.entry.kind

    @property
    def sort_key(self):
        return (self.entry.expires_at, self.entry.occurred_at, str(self.entry.pk))


class PointsLedger:
    """
    Append-only record of point movements for every user.

    Usage:
        ledger = PointsLedger()
        ledger.append("USR-001", "bonus", 500, description="Welcome bonus")
        ledger.balance_as_of("USR-001")
    """

    def __init__(self, store=None):
        self.store = store or get_default_store()

    # ======================================================================
    # Writes
    # ======================================================================

    def append(
        self,
        user_ref: str,
        kind: str,
        points: int,
        *,
        occurred_at: datetime | None = None,
        source_order_ref: str = "",
        order_value_q: int | None = None,
        offsets: PointsLedgerEntry | None = None,
        voucher=None,
        description: str = "",
        created_by: str = "",
    ) -> PointsLedgerEntry:
        """
        Validate and persist one entry under the user's lock.

        Positive entries of lot kinds get ``expires_at`` set to
        ``occurred_at`` plus POINTS_VALIDITY_MONTHS.

        Raises:
            ValidationError: Unknown kind, sign inconsistent with kind,
                order value on a non-purchase entry, or a bad ``offsets``.
        """
        kind = self._validate(user_ref, kind, points, order_value_q, offsets)
        occurred_at = occurred_at or timezone.now()

        expires_at = None
        if kind in LOT_KINDS and points > 0:
            expires_at = occurred_at + relativedelta(
                months=rewardman_settings.POINTS_VALIDITY_MONTHS
            )

        with self.store.user_lock(user_ref):
            entry = self.store.add_entry(
                user_ref=user_ref,
                kind=kind,
                points=points,
                occurred_at=occurred_at,
                expires_at=expires_at,
                source_order_ref=source_order_ref,
                order_value_q=order_value_q,
                offsets=offsets,
                voucher=voucher,
                description=description,
                created_by=created_by,
            )

        logger.info("Ledger %s: %+d pts (%s)", user_ref, points, kind)
        send_on_commit(points_appended, PointsLedgerEntry, entry=entry)
        return entry

    def record_order(
        self,
        user_ref: str,
        order_ref: str,
        order_value_q: int,
        points: int,
        *,
        occurred_at: datetime | None = None,
    ) -> PointsLedgerEntry:
        """
        Credit a completed order.

        Idempotent per (user, order): a repeated completion event returns
        the entry written the first time.
        """
        if not order_ref:
            raise ValidationError(message="Order reference is required")

        with self.store.user_lock(user_ref):
            existing = self.store.find_purchase(user_ref, order_ref)
            if existing:
                logger.info("Order %s already credited to %s", order_ref, user_ref)
                return existing
            return self.append(
                user_ref,
                EntryKind.PURCHASE,
                points,
                occurred_at=occurred_at,
                source_order_ref=order_ref,
                order_value_q=order_value_q,
                description=f"Order {order_ref}",
            )

    # ======================================================================
    # Reads
    # ======================================================================

    def balance_as_of(self, user_ref: str, instant: datetime | None = None) -> int:
        """Sum of entries that occurred at or before ``instant``."""
        return self.store.balance(user_ref, instant or timezone.now())

    def spendable_as_of(self, user_ref: str, instant: datetime | None = None) -> int:
        """
        Lowest balance from ``instant`` onward.

        Equals ``balance_as_of`` unless entries dated after ``instant``
        exist. Spending at ``instant`` must not push any of those later
        balances below zero.
        """
        instant = instant or timezone.now()
        balance = lowest = self.balance_as_of(user_ref, instant)
        later = sorted(
            (e for e in self.store.entries(user_ref) if e.occurred_at > instant),
            key=attrgetter("occurred_at"),
        )
        for _, group in groupby(later, key=attrgetter("occurred_at")):
            balance += sum(e.points for e in group)
            lowest = min(lowest, balance)
        return lowest

    def lifetime_points(self, user_ref: str) -> int:
        """
        Total ever earned (never decreases).

        Voucher refunds are excluded: they return points, they do not earn them.
        """
        return sum(
            e.points
            for e in self.store.entries(user_ref)
            if e.is_lot and e.voucher_id is None
        )

    def history(self, user_ref: str, limit: int = 50) -> list[PointsLedgerEntry]:
        """Most recent entries first."""
        return self.store.recent_entries(user_ref, limit)

    def lots(self, user_ref: str, until: datetime | None = None) -> list[Lot]:
        """
        Replay the ledger and return every earning lot with what is left.

        Entries are replayed in write order. A negative non-expiry entry
        consumes the open lots with the earliest ``expires_at`` first. An
        expiry entry takes its amount from the lot it offsets and closes it.
        """
        lots: dict = {}
        for entry in self.store.entries(user_ref, until=until):
            if entry.is_lot:
                lots[entry.pk] = Lot(entry=entry, remaining=entry.points)
            elif entry.kind == EntryKind.EXPIRY:
                lot = lots.get(entry.offsets_id)
                if lot is not None:
                    lot.remaining = max(0, lot.remaining + entry.points)
                    lot.offset = True
            elif entry.points < 0:
                self._consume(lots.values(), -entry.points)
        return list(lots.values())

    def entries_expiring_between(
        self,
        user_ref: str,
        start: datetime,
        end: datetime,
    ) -> Iterator[Lot]:
        """
        Lazily yield lots expiring in [start, end) that still hold points.

        Lots already offset by an expiry entry are skipped. ``Lot.remaining``
        is what would actually expire.
        """
        for lot in sorted(self.lots(user_ref), key=lambda lot: lot.sort_key):
            if lot.offset or lot.remaining <= 0:
                continue
            if start <= lot.expires_at < end:
                yield lot

    # ======================================================================
    # Internal
    # ======================================================================

    @staticmethod
    def _consume(lots, points: int) -> None:
        open_lots = sorted(
            (lot for lot in lots if not lot.offset and lot.remaining > 0),
            key=lambda lot: lot.sort_key,
        )
        for lot in open_lots:
            if points <= 0:
                break
            taken = min(lot.remaining, points)
            lot.remaining -= taken
            points -= taken

    @staticmethod
    def _validate(user_ref, kind, points, order_value_q, offsets) -> str:
        try:
            kind = EntryKind(kind).value
        except ValueError:
            raise ValidationError(message=f"Unknown entry kind '{kind}'", kind=kind)

        if not user_ref:
            raise ValidationError(message="User reference is required")
        if isinstance(points, bool) or not isinstance(points, int):
            raise ValidationError(message="Points must be an integer", points=points)

        if kind in EARNING_KINDS and points <= 0:
            raise ValidationError(
                message=f"'{kind}' entries must have positive points",
                kind=kind,
                points=points,
            )
        if kind in SPENDING_KINDS and points > 0:
            raise ValidationError(
                message=f"'{kind}' entries must have zero or negative points",
                kind=kind,
                points=points,
            )
        if kind == EntryKind.CORRECTION and points == 0:
            raise ValidationError(message="Corrections must move points", kind=kind)

        if order_value_q is not None:
            if kind != EntryKind.PURCHASE:
                raise ValidationError(
                    message="Only purchase entries carry an order value",
                    kind=kind,
                )
            if order_value_q < 0:
                raise ValidationError(
                    message="Order value cannot be negative",
                    order_value_q=order_value_q,
                )

        if kind == EntryKind.EXPIRY:
            if offsets is None:
                raise ValidationError(message="Expiry entries must reference the expired entry")
            if offsets.user_ref != user_ref or not offsets.is_lot:
                raise ValidationError(
                    message="Expiry must offset one of the user's earning entries",
                    offsets=str(offsets.pk),
                )
        elif offsets is not None:
            raise ValidationError(message="Only expiry entries can offset another entry", kind=kind)

        return kind
