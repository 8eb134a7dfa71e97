"""Money and store helpers."""

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation

from django.utils.module_loading import import_string

from rewardman.conf import rewardman_settings
from rewardman.exceptions import ValidationError


def to_cents(amount) -> int:
    """
    Convert a currency amount to integer cents.

    Accepts int, Decimal, str or float in currency units. Floats go
    through ``str()`` first so 19.99 becomes 1999, not 1998.
    """
    if isinstance(amount, bool):
        raise ValidationError(message="Amount must be numeric", amount=amount)
    try:
        value = Decimal(str(amount))
    except InvalidOperation:
        raise ValidationError(message="Amount must be numeric", amount=amount)
    return int((value * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def format_cents(amount_q: int, currency: str = "S$") -> str:
    """1_500_00 -> 'S$1,500.00'."""
    return f"{currency}{Decimal(amount_q) / 100:,.2f}"


def get_default_store():
    """Instantiate the configured RewardsStore."""
    backend_class = import_string(rewardman_settings.STORE_BACKEND)
    return backend_class()
