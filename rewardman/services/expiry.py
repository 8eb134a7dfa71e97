"""Expiry scheduler — upcoming expiries and materialized expiry entries."""

import logging
from datetime import datetime, timedelta

from django.utils import timezone

from rewardman.conf import rewardman_settings
from rewardman.models import EntryKind, PointsLedgerEntry
from rewardman.protocols import ExpiryProjection
from rewardman.services.ledger import PointsLedger
from rewardman.utils import get_default_store

logger = logging.getLogger(__name__)


class UpcomingExpiries:
    """
    Restartable, lazy view of a user's upcoming expiries.

    Nothing is read until iteration starts, and every new iteration
    re-reads the ledger. Lots from the same source expiring on the same
    instant are grouped.
    """

    def __init__(self, ledger: PointsLedger, user_ref: str, start: datetime, end: datetime):
        self.ledger = ledger
        self.user_ref = user_ref
        self.start = start
        self.end = end

    def __iter__(self):
        groups: dict = {}
        for lot in self.ledger.entries_expiring_between(self.user_ref, self.start, self.end):
            key = (lot.source, lot.expires_at)
            if key in groups:
                points, earned = groups[key]
                groups[key] = (points + lot.remaining, min(earned, lot.earned_at))
            else:
                groups[key] = (lot.remaining, lot.earned_at)

        for (source, expiry_date), (points, earned_date) in groups.items():
            yield ExpiryProjection(
                points=points,
                source=source,
                earned_date=earned_date,
                expiry_date=expiry_date,
            )


class ExpiryScheduler:
    """
    Answers "which points expire when" and writes expiry entries.

    Sending reminders is the notification layer's job; it polls
    ``due_reminders()`` or ``upcoming_expiries()``.
    """

    def __init__(self, store=None, ledger: PointsLedger | None = None):
        self.store = store or get_default_store()
        self.ledger = ledger or PointsLedger(self.store)

    def upcoming_expiries(
        self,
        user_ref: str,
        lookahead_days: int,
        *,
        now: datetime | None = None,
    ) -> UpcomingExpiries:
        now = now or timezone.now()
        return UpcomingExpiries(self.ledger, user_ref, now, now + timedelta(days=lookahead_days))

    def expiring_total(self, user_ref: str, days: int = 30, *, now: datetime | None = None) -> int:
        """Points that expire within ``days``."""
        return sum(p.points for p in self.upcoming_expiries(user_ref, days, now=now))

    def due_reminders(self, user_ref: str, *, now: datetime | None = None) -> list[ExpiryProjection]:
        """
        Projections whose days-to-expiry match a reminder offset.

        Offsets come from EXPIRY_REMINDER_DAYS (30/14/7/1 by default).
        Days are counted in local calendar dates.
        """
        now = now or timezone.now()
        offsets = set(rewardman_settings.EXPIRY_REMINDER_DAYS)
        if not offsets:
            return []

        today = timezone.localtime(now).date()
        due = []
        for projection in self.upcoming_expiries(user_ref, max(offsets) + 1, now=now):
            days_left = (timezone.localtime(projection.expiry_date).date() - today).days
            if days_left in offsets:
                due.append(projection)
        return due

    def materialize_expiry(
        self,
        user_ref: str,
        as_of: datetime | None = None,
    ) -> list[PointsLedgerEntry]:
        """
        Append an expiry entry for every lot due by ``as_of``.

        Each expiry entry deducts what is left of the lot and points back
        to it, and is dated at the lot's own ``expires_at``. Lots already
        offset or fully spent are skipped, so running this again for the
        same instant writes nothing.
        """
        as_of = as_of or timezone.now()
        created = []

        with self.store.user_lock(user_ref):
            for lot in self.ledger.lots(user_ref):
                if lot.offset or lot.remaining <= 0 or lot.expires_at > as_of:
                    continue
                entry = self.ledger.append(
                    user_ref,
                    EntryKind.EXPIRY,
                    -lot.remaining,
                    occurred_at=lot.expires_at,
                    offsets=lot.entry,
                    description=f"Points expired: {lot.source}",
                )
                created.append(entry)

        if created:
            logger.info(
                "Expired %d pts for %s (%d lots)",
                -sum(e.points for e in created),
                user_ref,
                len(created),
            )
        return created

    def materialize_all(self, as_of: datetime | None = None) -> int:
        """Run ``materialize_expiry`` for every user. Returns entries written."""
        as_of = as_of or timezone.now()
        total = 0
        for user_ref in list(self.store.user_refs()):
            total += len(self.materialize_expiry(user_ref, as_of))
        return total
