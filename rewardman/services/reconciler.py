"""Missing-points reconciler — dispute workflow ending in a ledger correction."""

import logging
from datetime import date, datetime

from django.utils import timezone

from rewardman.exceptions import (
    DuplicateReport,
    InvalidStateTransition,
    ReportNotFound,
    ValidationError,
)
from rewardman.models import EntryKind, MissingPointsReport, ReportStatus
from rewardman.services.ledger import PointsLedger
from rewardman.signals import report_status_changed, send_on_commit
from rewardman.utils import get_default_store

logger = logging.getLogger(__name__)


class MissingPointsReconciler:
    """
    reported -> investigating -> resolved | rejected.

    Terminal reports never move again. Resolving credits the user with a
    ``correction`` entry in the same transaction as the status change.
    """

    def __init__(self, store=None, ledger: PointsLedger | None = None):
        self.store = store or get_default_store()
        self.ledger = ledger or PointsLedger(self.store)

    def report(
        self,
        user_ref: str,
        order_ref: str,
        expected_points: int,
        reason: str,
        *,
        order_date: date | None = None,
        now: datetime | None = None,
    ) -> MissingPointsReport:
        """
        Open a report for an order.

        Raises:
            DuplicateReport: An open report exists for (user, order)
            ValidationError: expected_points not positive or order missing
        """
        if not order_ref:
            raise ValidationError(message="Order reference is required")
        if expected_points <= 0:
            raise ValidationError(
                message="Expected points must be positive",
                expected_points=expected_points,
            )

        with self.store.user_lock(user_ref):
            existing = self.store.open_report(user_ref, order_ref)
            if existing:
                raise DuplicateReport(
                    user_ref=user_ref,
                    order_ref=order_ref,
                    report_id=str(existing.pk),
                )
            report = self.store.add_report(
                user_ref=user_ref,
                order_ref=order_ref,
                order_date=order_date,
                expected_points=expected_points,
                reason=reason,
                status=ReportStatus.REPORTED,
                reported_at=now or timezone.now(),
            )

        logger.info("Missing points reported: %s order %s (%d pts)", user_ref, order_ref, expected_points)
        send_on_commit(report_status_changed, MissingPointsReport, report=report, old_status="")
        return report

    def begin_investigation(self, report_id, *, notes: str = "") -> MissingPointsReport:
        return self._transition(report_id, ReportStatus.REPORTED, ReportStatus.INVESTIGATING, notes)

    def resolve(
        self,
        report_id,
        credited_points: int | None = None,
        *,
        notes: str = "",
        now: datetime | None = None,
    ) -> MissingPointsReport:
        """
        Credit the user and close the report.

        ``credited_points`` defaults to the expected amount and may be lower
        when the claim is only partly substantiated.
        """
        now = now or timezone.now()
        report = self.get(report_id)
        credited = report.expected_points if credited_points is None else credited_points
        if credited <= 0:
            raise ValidationError(
                message="Credited points must be positive; reject the report instead",
                credited_points=credited,
            )

        with self.store.user_lock(report.user_ref):
            report = self.get(report_id)
            self._check(report, ReportStatus.INVESTIGATING, ReportStatus.RESOLVED)

            entry = self.ledger.append(
                report.user_ref,
                EntryKind.CORRECTION,
                credited,
                occurred_at=now,
                source_order_ref=report.order_ref,
                description=f"Missing points for order {report.order_ref}",
            )
            fields = {
                "resolved_at": now,
                "credited_points": credited,
                "correction_entry": entry,
            }
            if notes:
                fields["admin_notes"] = notes
            if not self.store.swap_report_status(
                report.pk, ReportStatus.INVESTIGATING, ReportStatus.RESOLVED, **fields
            ):
                raise InvalidStateTransition(report_id=str(report.pk), target=ReportStatus.RESOLVED.value)

        report = self.get(report_id)
        logger.info("Report %s resolved: +%d pts to %s", report.pk, credited, report.user_ref)
        send_on_commit(
            report_status_changed,
            MissingPointsReport,
            report=report,
            old_status=ReportStatus.INVESTIGATING.value,
        )
        return report

    def reject(self, report_id, *, notes: str = "", now: datetime | None = None) -> MissingPointsReport:
        return self._transition(
            report_id,
            ReportStatus.INVESTIGATING,
            ReportStatus.REJECTED,
            notes,
            resolved_at=now or timezone.now(),
        )

    # Queries

    def get(self, report_id) -> MissingPointsReport:
        report = self.store.get_report(report_id)
        if report is None:
            raise ReportNotFound(report_id=str(report_id))
        return report

    def reports_for(self, user_ref: str) -> list[MissingPointsReport]:
        return self.store.reports(user_ref)

    # Internal

    def _transition(self, report_id, expected: str, target: str, notes: str, **fields) -> MissingPointsReport:
        report = self.get(report_id)
        self._check(report, expected, target)
        if notes:
            fields["admin_notes"] = notes
        if not self.store.swap_report_status(report.pk, expected, target, **fields):
            # Moved by someone else since we read it
            report = self.get(report_id)
            raise InvalidStateTransition(report_id=str(report.pk), status=report.status, target=target)

        report = self.get(report_id)
        logger.info("Report %s: %s -> %s", report.pk, expected, target)
        send_on_commit(report_status_changed, MissingPointsReport, report=report, old_status=str(expected))
        return report

    @staticmethod
    def _check(report: MissingPointsReport, expected: str, target: str) -> None:
        if report.status != expected:
            logger.warning(
                "Rejected report transition %s: %s -> %s", report.pk, report.status, target
            )
            raise InvalidStateTransition(
                report_id=str(report.pk),
                status=report.status,
                target=str(target),
            )
