"""Storage port for the loyalty ledger."""

from contextlib import AbstractContextManager
from datetime import datetime
from typing import Iterable, Protocol, runtime_checkable

from rewardman.models import (
    MissingPointsReport,
    PointsLedgerEntry,
    TierStatus,
    Voucher,
)


@runtime_checkable
class RewardsStore(Protocol):
    """
    Persistence capabilities the loyalty services rely on.

    Capability set: a per-user lock scope, append, query-by-user and an
    atomic compare-and-swap on voucher/report status. Every record is
    partitioned by ``user_ref``; no operation ever locks across users.

    Implemented by adapters/django_store.py.

    Configuration in settings.py:
        REWARDMAN = {
            "STORE_BACKEND": "rewardman.adapters.django_store.DjangoRewardsStore",
        }
    """

    def user_lock(self, user_ref: str) -> AbstractContextManager:
        """
        Transaction scope holding the user's write lock.

        Everything done inside commits or rolls back together, and
        concurrent writers for the same user wait for it.
        """
        ...

    # Ledger

    def add_entry(self, **fields) -> PointsLedgerEntry:
        ...

    def entries(
        self,
        user_ref: str,
        until: datetime | None = None,
    ) -> list[PointsLedgerEntry]:
        """Entries in write order (created_at, then occurred_at)."""
        ...

    def balance(self, user_ref: str, until: datetime) -> int:
        ...

    def find_purchase(self, user_ref: str, order_ref: str) -> PointsLedgerEntry | None:
        ...

    def purchase_spend(self, user_ref: str, after: datetime, until: datetime) -> int:
        """Sum of order values of positive purchase entries in (after, until]."""
        ...

    def recent_entries(self, user_ref: str, limit: int) -> list[PointsLedgerEntry]:
        ...

    def user_refs(self) -> Iterable[str]:
        """Every user with ledger activity."""
        ...

    # Vouchers

    def add_voucher(self, **fields) -> Voucher:
        ...

    def get_voucher(self, voucher_id) -> Voucher | None:
        ...

    def vouchers(self, user_ref: str, status: str | None = None) -> list[Voucher]:
        ...

    def swap_voucher_status(self, voucher_id, expected: str, new: str, **fields) -> bool:
        """Set status to ``new`` only if it is still ``expected``."""
        ...

    def expire_vouchers(self, as_of: datetime) -> int:
        ...

    # Tiers

    def add_tier_status(self, **fields) -> TierStatus:
        ...

    def latest_tier_status(self, user_ref: str) -> TierStatus | None:
        ...

    # Missing points reports

    def add_report(self, **fields) -> MissingPointsReport:
        """Raises DuplicateReport if an open report exists for the order."""
        ...

    def get_report(self, report_id) -> MissingPointsReport | None:
        ...

    def open_report(self, user_ref: str, order_ref: str) -> MissingPointsReport | None:
        ...

    def reports(self, user_ref: str) -> list[MissingPointsReport]:
        ...

    def swap_report_status(self, report_id, expected: str, new: str, **fields) -> bool:
        """Set status to ``new`` only if it is still ``expected``."""
        ...
