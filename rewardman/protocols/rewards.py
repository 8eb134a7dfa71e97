"""Value objects exchanged with screens and the notification layer."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class CatalogEntry:
    """A redeemable voucher in the rewards catalog."""

    id: str
    title: str
    face_value_q: int  # cents
    points_cost: int
    minimum_order_q: int = 0  # cents
    validity_days: int = 30
    minimum_tier: str = "bronze"


@dataclass(frozen=True)
class ExpiryProjection:
    """Points from one source that expire on one date."""

    points: int
    source: str
    earned_date: datetime
    expiry_date: datetime


@dataclass(frozen=True)
class PointsSummary:
    """Snapshot for the rewards screen."""

    user_ref: str
    balance: int
    lifetime_points: int
    tier: str
    expiring_soon: int
    active_vouchers: int
