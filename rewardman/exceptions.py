"""Rewardman exceptions."""

from typing import Any


class RewardmanError(Exception):
    """
    Structured exception for loyalty operations.

    Every error carries a stable ``code``, a human ``message`` and a ``data``
    dict with the values that triggered it. Subclasses pin the code so callers
    can catch by type or switch on ``e.code``.

    Usage:
        try:
            engine.redeem("USR-001", "voucher-500")
        except InsufficientPoints as e:
            show_balance(e.data["available"])
        except RewardmanError as e:
            log(e.as_dict())
    """

    code = "REWARDMAN_ERROR"

    _default_messages = {
        "REWARDMAN_ERROR": "Loyalty operation failed",
        "VALIDATION_ERROR": "Invalid ledger entry",
        "INSUFFICIENT_POINTS": "Insufficient points for redemption",
        "VOUCHER_NOT_FOUND": "Voucher not found",
        "VOUCHER_NOT_ACTIVE": "Voucher is not active",
        "VOUCHER_EXPIRED": "Voucher has expired",
        "MINIMUM_ORDER_NOT_MET": "Order subtotal below voucher minimum",
        "CATALOG_ENTRY_NOT_FOUND": "Reward not found in catalog",
        "TIER_NOT_ELIGIBLE": "Membership tier too low for this reward",
        "REPORT_NOT_FOUND": "Missing points report not found",
        "DUPLICATE_REPORT": "An open report already exists for this order",
        "INVALID_STATE_TRANSITION": "Invalid state transition",
    }

    def __init__(self, code: str | None = None, message: str | None = None, **data: Any):
        if code:
            self.code = code
        self.message = message or self._default_messages.get(self.code, self.code)
        self.data = data
        super().__init__(f"[{self.code}] {self.message}")

    def as_dict(self) -> dict:
        return {"code": self.code, "message": self.message, "data": self.data}


class ValidationError(RewardmanError):
    """Malformed or sign-inconsistent ledger entry."""

    code = "VALIDATION_ERROR"


class InsufficientPoints(RewardmanError):
    code = "INSUFFICIENT_POINTS"


class CatalogEntryNotFound(RewardmanError):
    code = "CATALOG_ENTRY_NOT_FOUND"


class TierNotEligible(RewardmanError):
    code = "TIER_NOT_ELIGIBLE"


class VoucherNotFound(RewardmanError):
    code = "VOUCHER_NOT_FOUND"


class VoucherNotActive(RewardmanError):
    code = "VOUCHER_NOT_ACTIVE"


class VoucherExpired(RewardmanError):
    code = "VOUCHER_EXPIRED"


class MinimumOrderNotMet(RewardmanError):
    code = "MINIMUM_ORDER_NOT_MET"


class ReportNotFound(RewardmanError):
    code = "REPORT_NOT_FOUND"


class DuplicateReport(RewardmanError):
    code = "DUPLICATE_REPORT"


class InvalidStateTransition(RewardmanError):
    """Raised for any transition the voucher or report state machine forbids."""

    code = "INVALID_STATE_TRANSITION"
