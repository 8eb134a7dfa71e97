"""
PointsLedgerEntry model - append-only record of point movements.

Balance is never stored. It is the sum of a user's entries whose
``occurred_at`` is at or before the instant of interest.

Expiry never deletes or edits the earning entry: an ``expiry`` entry with
negative points is appended, pointing back through ``offsets``. The
one-to-one makes "already expired" a database fact.
"""

import uuid

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class EntryKind(models.TextChoices):
    PURCHASE = "purchase", _("Purchase")
    BONUS = "bonus", _("Bonus")
    REFERRAL = "referral", _("Referral")
    ACHIEVEMENT = "achievement", _("Achievement")
    REDEMPTION = "redemption", _("Redemption")
    EXPIRY = "expiry", _("Expiry")
    CORRECTION = "correction", _("Correction")


# Kinds that must carry positive points
EARNING_KINDS = frozenset({
    EntryKind.PURCHASE.value,
    EntryKind.BONUS.value,
    EntryKind.REFERRAL.value,
    EntryKind.ACHIEVEMENT.value,
})

# Kinds that must carry zero or negative points
SPENDING_KINDS = frozenset({EntryKind.REDEMPTION.value, EntryKind.EXPIRY.value})

# Positive entries of these kinds form expirable lots
LOT_KINDS = EARNING_KINDS | {EntryKind.CORRECTION.value}


class PointsLedgerEntry(models.Model):
    """
    Immutable signed point movement.

    Never modified or deleted once written.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_ref = models.CharField(_("user"), max_length=100, db_index=True)

    kind = models.CharField(_("kind"), max_length=20, choices=EntryKind.choices)
    points = models.IntegerField(
        _("points"),
        help_text=_("Positive when earned, negative when redeemed/expired/corrected"),
    )

    occurred_at = models.DateTimeField(
        _("occurred at"),
        help_text=_("Instant the movement counts toward the balance"),
    )
    expires_at = models.DateTimeField(
        _("expires at"),
        null=True,
        blank=True,
        help_text=_("Set for positive earning entries only"),
    )

    source_order_ref = models.CharField(_("order"), max_length=100, blank=True)
    order_value_q = models.BigIntegerField(
        _("order value (cents)"),
        null=True,
        blank=True,
        help_text=_("Purchase entries only; drives rolling spend"),
    )

    offsets = models.OneToOneField(
        "self",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="expiry_entry",
        verbose_name=_("offsets entry"),
    )
    voucher = models.ForeignKey(
        "rewardman.Voucher",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="ledger_entries",
        verbose_name=_("voucher"),
    )

    description = models.CharField(_("description"), max_length=200, blank=True)
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)
    created_by = models.CharField(_("created by"), max_length=100, blank=True)

    class Meta:
        verbose_name = _("ledger entry")
        verbose_name_plural = _("ledger entries")
        ordering = ["-occurred_at"]
        indexes = [
            models.Index(fields=["user_ref", "occurred_at"], name="rm_entry_user_occurred"),
            models.Index(fields=["kind", "expires_at"], name="rm_entry_kind_expires"),
        ]
        constraints = [
            models.UniqueConstraint(
                fields=["user_ref", "source_order_ref"],
                condition=Q(kind="purchase") & ~Q(source_order_ref=""),
                name="rewardman_one_purchase_per_order",
            ),
        ]

    def __str__(self):
        sign = "+" if self.points > 0 else ""
        return f"{self.user_ref}: {sign}{self.points}pts ({self.kind})"

    @property
    def is_lot(self) -> bool:
        """Positive entry whose points can expire."""
        return self.kind in LOT_KINDS and self.points > 0
