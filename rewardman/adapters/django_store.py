"""Django ORM implementation of the RewardsStore protocol."""

from contextlib import contextmanager
from datetime import datetime

from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import IntegrityError, transaction
from django.db.models import Sum

from rewardman.exceptions import DuplicateReport
from rewardman.models import (
    OPEN_REPORT_STATUSES,
    EntryKind,
    MissingPointsReport,
    PointsAccount,
    PointsLedgerEntry,
    TierStatus,
    Voucher,
    VoucherStatus,
)


class DjangoRewardsStore:
    """
    Adapter: the default database implements RewardsStore.

    The per-user lock is a ``SELECT ... FOR UPDATE`` on the user's
    PointsAccount row inside ``transaction.atomic()``. Status changes
    are conditional UPDATEs, so they only land if nobody moved the row
    first.
    """

    @contextmanager
    def user_lock(self, user_ref: str):
        with transaction.atomic():
            PointsAccount.objects.get_or_create(user_ref=user_ref)
            PointsAccount.objects.select_for_update().get(user_ref=user_ref)
            yield

    # ------------------------------------------------------------------
    # Ledger
    # ------------------------------------------------------------------

    def add_entry(self, **fields) -> PointsLedgerEntry:
        return PointsLedgerEntry.objects.create(**fields)

    def entries(self, user_ref: str, until: datetime | None = None) -> list[PointsLedgerEntry]:
        qs = PointsLedgerEntry.objects.filter(user_ref=user_ref)
        if until is not None:
            qs = qs.filter(occurred_at__lte=until)
        return list(qs.order_by("created_at", "occurred_at", "id"))

    def balance(self, user_ref: str, until: datetime) -> int:
        total = PointsLedgerEntry.objects.filter(
            user_ref=user_ref,
            occurred_at__lte=until,
        ).aggregate(total=Sum("points"))["total"]
        return total or 0

    def find_purchase(self, user_ref: str, order_ref: str) -> PointsLedgerEntry | None:
        return PointsLedgerEntry.objects.filter(
            user_ref=user_ref,
            kind=EntryKind.PURCHASE,
            source_order_ref=order_ref,
        ).first()

    def purchase_spend(self, user_ref: str, after: datetime, until: datetime) -> int:
        total = PointsLedgerEntry.objects.filter(
            user_ref=user_ref,
            kind=EntryKind.PURCHASE,
            points__gt=0,
            occurred_at__gt=after,
            occurred_at__lte=until,
        ).aggregate(total=Sum("order_value_q"))["total"]
        return total or 0

    def recent_entries(self, user_ref: str, limit: int) -> list[PointsLedgerEntry]:
        return list(
            PointsLedgerEntry.objects.filter(user_ref=user_ref)
            .order_by("-occurred_at", "-created_at")[:limit]
        )

    def user_refs(self):
        return (
            PointsLedgerEntry.objects.order_by("user_ref")
            .values_list("user_ref", flat=True)
            .distinct()
        )

    # ------------------------------------------------------------------
    # Vouchers
    # ------------------------------------------------------------------

    def add_voucher(self, **fields) -> Voucher:
        return Voucher.objects.create(**fields)

    def get_voucher(self, voucher_id) -> Voucher | None:
        try:
            return Voucher.objects.get(pk=voucher_id)
        except (Voucher.DoesNotExist, DjangoValidationError):
            return None

    def vouchers(self, user_ref: str, status: str | None = None) -> list[Voucher]:
        qs = Voucher.objects.filter(user_ref=user_ref)
        if status:
            qs = qs.filter(status=status)
        return list(qs)

    def swap_voucher_status(self, voucher_id, expected: str, new: str, **fields) -> bool:
        updated = Voucher.objects.filter(pk=voucher_id, status=expected).update(
            status=new, **fields
        )
        return updated == 1

    def expire_vouchers(self, as_of: datetime) -> int:
        return Voucher.objects.filter(
            status=VoucherStatus.ACTIVE,
            expires_at__lte=as_of,
        ).update(status=VoucherStatus.EXPIRED)

    # ------------------------------------------------------------------
    # Tiers
    # ------------------------------------------------------------------

    def add_tier_status(self, **fields) -> TierStatus:
        return TierStatus.objects.create(**fields)

    def latest_tier_status(self, user_ref: str) -> TierStatus | None:
        return (
            TierStatus.objects.filter(user_ref=user_ref)
            .order_by("-computed_at", "-id")
            .first()
        )

    # ------------------------------------------------------------------
    # Missing points reports
    # ------------------------------------------------------------------

    def add_report(self, **fields) -> MissingPointsReport:
        try:
            with transaction.atomic():
                return MissingPointsReport.objects.create(**fields)
        except IntegrityError:
            raise DuplicateReport(
                user_ref=fields.get("user_ref"),
                order_ref=fields.get("order_ref"),
            )

    def get_report(self, report_id) -> MissingPointsReport | None:
        try:
            return MissingPointsReport.objects.get(pk=report_id)
        except (MissingPointsReport.DoesNotExist, DjangoValidationError):
            return None

    def open_report(self, user_ref: str, order_ref: str) -> MissingPointsReport | None:
        return MissingPointsReport.objects.filter(
            user_ref=user_ref,
            order_ref=order_ref,
            status__in=OPEN_REPORT_STATUSES,
        ).first()

    def reports(self, user_ref: str) -> list[MissingPointsReport]:
        return list(MissingPointsReport.objects.filter(user_ref=user_ref))

    def swap_report_status(self, report_id, expected: str, new: str, **fields) -> bool:
        updated = MissingPointsReport.objects.filter(pk=report_id, status=expected).update(
            status=new, **fields
        )
        return updated == 1
