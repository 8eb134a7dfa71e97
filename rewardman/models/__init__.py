"""Rewardman models.

Every model is partitioned by ``user_ref``; nothing is shared across users.
"""

from rewardman.models.account import PointsAccount
from rewardman.models.ledger import (
    EARNING_KINDS,
    LOT_KINDS,
    SPENDING_KINDS,
    EntryKind,
    PointsLedgerEntry,
)
from rewardman.models.tier import Tier, TierStatus
from rewardman.models.voucher import Voucher, VoucherStatus
from rewardman.models.report import (
    OPEN_REPORT_STATUSES,
    MissingPointsReport,
    ReportStatus,
)

__all__ = [
    "PointsAccount",
    # Ledger
    "EntryKind",
    "EARNING_KINDS",
    "SPENDING_KINDS",
    "LOT_KINDS",
    "PointsLedgerEntry",
    # Tiers
    "Tier",
    "TierStatus",
    # Vouchers
    "Voucher",
    "VoucherStatus",
    # Missing points
    "MissingPointsReport",
    "ReportStatus",
    "OPEN_REPORT_STATUSES",
]
