"""MissingPointsReport model - user dispute workflow."""

import uuid

from django.db import models
from django.db.models import Q
from django.utils.translation import gettext_lazy as _


class ReportStatus(models.TextChoices):
    REPORTED = "reported", _("Reported")
    INVESTIGATING = "investigating", _("Investigating")
    RESOLVED = "resolved", _("Resolved")
    REJECTED = "rejected", _("Rejected")


OPEN_REPORT_STATUSES = (ReportStatus.REPORTED, ReportStatus.INVESTIGATING)


class MissingPointsReport(models.Model):
    """
    Points a user believes are owed for an order.

    reported -> investigating -> resolved | rejected. Only one open
    report per (user, order); once terminal the user may report again.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    user_ref = models.CharField(_("user"), max_length=100, db_index=True)
    order_ref = models.CharField(_("order"), max_length=100)
    order_date = models.DateField(_("order date"), null=True, blank=True)

    expected_points = models.IntegerField(_("expected points"))
    reason = models.TextField(_("reason"))

    status = models.CharField(
        _("status"),
        max_length=20,
        choices=ReportStatus.choices,
        default=ReportStatus.REPORTED,
    )
    reported_at = models.DateTimeField(_("reported at"))
    resolved_at = models.DateTimeField(_("resolved at"), null=True, blank=True)

    credited_points = models.IntegerField(_("credited points"), null=True, blank=True)
    correction_entry = models.OneToOneField(
        "rewardman.PointsLedgerEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="missing_points_report",
        verbose_name=_("correction entry"),
    )

    # Internal notes (not visible to customer)
    admin_notes = models.TextField(_("admin notes"), blank=True)

    class Meta:
        verbose_name = _("missing points report")
        verbose_name_plural = _("missing points reports")
        ordering = ["-reported_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["user_ref", "order_ref"],
                condition=Q(status__in=["reported", "investigating"]),
                name="rewardman_one_open_report_per_order",
            ),
        ]

    def __str__(self):
        return f"{self.user_ref} / {self.order_ref}: {self.status}"

    @property
    def is_open(self) -> bool:
        return self.status in OPEN_REPORT_STATUSES
