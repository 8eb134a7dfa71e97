"""
Rewardman signals — public event API.

The app never notifies users itself; a notification layer connects here.
Every signal is sent once the surrounding transaction commits, so
receivers never hear about writes that were rolled back.

Emitted signals:
- points_appended: Emitted by PointsLedger.append()
- voucher_redeemed: Emitted by VoucherEngine.redeem()
- voucher_status_changed: Emitted on use, expiry on application, cancellation
- tier_changed: Emitted by TierCalculator.recompute() when the tier moves
- report_status_changed: Emitted on every missing points report transition
"""

from django.db import transaction
from django.dispatch import Signal

points_appended = Signal()  # sender=PointsLedgerEntry, entry=PointsLedgerEntry
voucher_redeemed = Signal()  # sender=Voucher, voucher=Voucher
voucher_status_changed = Signal()  # sender=Voucher, voucher=Voucher, old_status=str
tier_changed = Signal()  # sender=TierStatus, status=TierStatus
report_status_changed = Signal()  # sender=MissingPointsReport, report=..., old_status=str


def send_on_commit(signal: Signal, sender, **kwargs) -> None:
    """Send ``signal`` after commit; immediately when no transaction is open."""
    transaction.on_commit(lambda: signal.send(sender=sender, **kwargs))
