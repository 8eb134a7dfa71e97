"""
Django Rewardman - Loyalty points & voucher ledger.

Usage:
    from rewardman import RewardsService
    from rewardman.exceptions import InsufficientPoints, RewardmanError

    rewards = RewardsService()
    rewards.record_order("USR-001", "ORD-42", order_value_q=125_000, points=1_250)
    balance = rewards.ledger.balance_as_of("USR-001")
    voucher = rewards.vouchers.redeem("USR-001", "voucher-500")
"""


def __getattr__(name):
    if name == "RewardsService":
        from rewardman.service import RewardsService

        return RewardsService
    if name == "RewardmanError":
        from rewardman.exceptions import RewardmanError

        return RewardmanError
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


__all__ = ["RewardsService", "RewardmanError"]
__version__ = "0.1.0"
