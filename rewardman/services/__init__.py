"""Rewardman services.

Each component takes a RewardsStore at construction; without one it
builds the store configured in REWARDMAN["STORE_BACKEND"].
"""

from rewardman.services.ledger import Lot, PointsLedger
from rewardman.services.tiers import TierCalculator
from rewardman.services.expiry import ExpiryScheduler, UpcomingExpiries
from rewardman.services.vouchers import VoucherEngine
from rewardman.services.reconciler import MissingPointsReconciler

__all__ = [
    "PointsLedger",
    "Lot",
    "TierCalculator",
    "ExpiryScheduler",
    "UpcomingExpiries",
    "VoucherEngine",
    "MissingPointsReconciler",
]
