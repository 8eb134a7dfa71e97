"""TierStatus model - periodic membership tier snapshots."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class Tier(models.TextChoices):
    """Membership tiers, lowest first."""

    BRONZE = "bronze", _("Bronze")
    SILVER = "silver", _("Silver")
    GOLD = "gold", _("Gold")

    @classmethod
    def rank(cls, tier: str) -> int:
        return cls.values.index(tier)


class TierStatus(models.Model):
    """
    Snapshot written by each tier review.

    The displayed tier is always the most recent snapshot, never a live
    recomputation.
    """

    user_ref = models.CharField(_("user"), max_length=100)
    tier = models.CharField(_("tier"), max_length=20, choices=Tier.choices)
    previous_tier = models.CharField(
        _("previous tier"),
        max_length=20,
        choices=Tier.choices,
        blank=True,
    )
    rolling_spend_q = models.BigIntegerField(_("rolling spend (cents)"))
    computed_at = models.DateTimeField(_("computed at"))

    class Meta:
        verbose_name = _("tier status")
        verbose_name_plural = _("tier statuses")
        ordering = ["-computed_at"]
        indexes = [
            models.Index(fields=["user_ref", "-computed_at"], name="rm_tier_user_computed"),
        ]

    def __str__(self):
        return f"{self.user_ref}: {self.tier}"
