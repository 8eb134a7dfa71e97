"""Voucher model."""

import secrets
import uuid

from django.db import models
from django.utils.translation import gettext_lazy as _


def generate_voucher_code() -> str:
    return secrets.token_hex(5).upper()


class VoucherStatus(models.TextChoices):
    ACTIVE = "active", _("Active")
    USED = "used", _("Used")
    EXPIRED = "expired", _("Expired")
    CANCELLED = "cancelled", _("Cancelled")


class Voucher(models.Model):
    """
    Time-boxed, single-use discount bought with points.

    Status only moves forward: active -> used | expired | cancelled.
    The minimum order is copied from the catalog at issuance and
    checked when the voucher is applied.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    code = models.CharField(
        _("code"),
        max_length=16,
        unique=True,
        default=generate_voucher_code,
        help_text=_("Confirmation code shown to the customer"),
    )
    user_ref = models.CharField(_("user"), max_length=100, db_index=True)

    catalog_ref = models.CharField(_("catalog entry"), max_length=50)
    title = models.CharField(_("title"), max_length=100)
    face_value_q = models.BigIntegerField(_("face value (cents)"))
    points_cost = models.IntegerField(_("points cost"))
    minimum_order_q = models.BigIntegerField(_("minimum order (cents)"), default=0)

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=VoucherStatus.choices,
        default=VoucherStatus.ACTIVE,
        db_index=True,
    )
    issued_at = models.DateTimeField(_("issued at"))
    expires_at = models.DateTimeField(_("expires at"), db_index=True)
    used_at = models.DateTimeField(_("used at"), null=True, blank=True)
    used_in_order_ref = models.CharField(_("used in order"), max_length=100, blank=True)
    cancelled_at = models.DateTimeField(_("cancelled at"), null=True, blank=True)

    class Meta:
        verbose_name = _("voucher")
        verbose_name_plural = _("vouchers")
        ordering = ["-issued_at"]
        indexes = [
            models.Index(fields=["user_ref", "status"], name="rm_voucher_user_status"),
        ]

    def __str__(self):
        return f"{self.code} ({self.title}, {self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status != VoucherStatus.ACTIVE
