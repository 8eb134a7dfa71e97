"""PointsAccount model - per-user lock row."""

from django.db import models
from django.utils.translation import gettext_lazy as _


class PointsAccount(models.Model):
    """
    One row per loyalty member.

    Holds no balance: the ledger is the source of truth. The row exists so
    every mutation for a user can take ``SELECT ... FOR UPDATE`` on it and
    run single-writer. Created lazily on the first mutation.
    """

    user_ref = models.CharField(
        _("user"),
        max_length=100,
        unique=True,
        help_text=_("External user identifier (partition key)"),
    )
    created_at = models.DateTimeField(_("created at"), auto_now_add=True)

    class Meta:
        verbose_name = _("points account")
        verbose_name_plural = _("points accounts")

    def __str__(self):
        return self.user_ref
