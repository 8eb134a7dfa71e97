"""Tests for the RewardsService facade, wiring, commands and admin."""

from decimal import Decimal
from io import StringIO
from unittest.mock import patch

import pytest
from dateutil.relativedelta import relativedelta
from django.contrib import admin
from django.core.management import call_command
from django.core.management.base import CommandError
from django.test import RequestFactory

from rewardman import RewardmanError, RewardsService
from rewardman.adapters.django_store import DjangoRewardsStore
from rewardman.exceptions import InsufficientPoints, ValidationError
from rewardman.models import PointsLedgerEntry, TierStatus, Voucher
from rewardman.protocols import RewardsStore
from rewardman.tests.conftest import USER
from rewardman.utils import format_cents, get_default_store, to_cents


pytestmark = pytest.mark.django_db


class RecordingStore(DjangoRewardsStore):
    """Store that remembers which users it locked."""

    def __init__(self):
        self.locked = []

    def user_lock(self, user_ref):
        self.locked.append(user_ref)
        return super().user_lock(user_ref)


# ═══════════════════════════════════════════════════════════════════
# Facade
# ═══════════════════════════════════════════════════════════════════


class TestSummary:
    def test_summary(self, rewards, funded_user, t0, day):
        rewards.vouchers.redeem(funded_user, "voucher-500", now=t0 + day)

        summary = rewards.summary(funded_user, now=t0 + 2 * day)

        assert summary.user_ref == funded_user
        assert summary.balance == 5_000
        assert summary.lifetime_points == 25_000
        assert summary.tier == "bronze"
        assert summary.expiring_soon == 0
        assert summary.active_vouchers == 1

    def test_expiring_soon(self, rewards, funded_user, t0):
        summary = rewards.summary(funded_user, now=t0 + relativedelta(months=11, days=15))
        assert summary.expiring_soon == 25_000

    def test_unknown_user(self, rewards, t0):
        summary = rewards.summary("USR-NOBODY", now=t0)
        assert (summary.balance, summary.lifetime_points, summary.tier) == (0, 0, "bronze")


class TestGrant:
    @pytest.mark.parametrize("kind", ["bonus", "referral", "achievement"])
    def test_grant_kinds(self, rewards, kind, t0):
        entry = rewards.grant(USER, kind, 500, "Welcome", occurred_at=t0, created_by="staff:ana")

        assert entry.kind == kind
        assert entry.created_by == "staff:ana"
        assert rewards.ledger.balance_as_of(USER, t0) == 500

    @pytest.mark.parametrize("kind", ["purchase", "correction", "redemption", "expiry"])
    def test_other_kinds_refused(self, rewards, kind):
        with pytest.raises(ValidationError):
            rewards.grant(USER, kind, 500)
        assert not PointsLedgerEntry.objects.exists()

    def test_record_order_delegates(self, rewards, t0):
        entry = rewards.record_order(USER, "ORD-5", 50_000, 500, occurred_at=t0)
        assert entry.order_value_q == 50_000


class TestStoreBackend:
    def test_default_store(self):
        store = get_default_store()
        assert isinstance(store, DjangoRewardsStore)
        assert isinstance(store, RewardsStore)

    def test_store_from_settings(self, settings, t0):
        settings.REWARDMAN = {"STORE_BACKEND": "rewardman.tests.test_service.RecordingStore"}

        rewards = RewardsService()
        rewards.grant(USER, "bonus", 10, occurred_at=t0)

        assert isinstance(rewards.store, RecordingStore)
        assert rewards.store.locked == [USER]

    def test_components_share_store(self, rewards):
        assert rewards.ledger.store is rewards.store
        assert rewards.vouchers.ledger is rewards.ledger
        assert rewards.expiry.ledger is rewards.ledger
        assert rewards.reconciler.ledger is rewards.ledger


# ═══════════════════════════════════════════════════════════════════
# Errors & money helpers
# ═══════════════════════════════════════════════════════════════════


class TestErrors:
    def test_structured_error(self):
        e = InsufficientPoints(available=10, requested=20_000)

        assert isinstance(e, RewardmanError)
        assert e.code == "INSUFFICIENT_POINTS"
        assert str(e) == "[INSUFFICIENT_POINTS] Insufficient points for redemption"
        assert e.as_dict() == {
            "code": "INSUFFICIENT_POINTS",
            "message": "Insufficient points for redemption",
            "data": {"available": 10, "requested": 20_000},
        }

    def test_custom_message(self):
        e = ValidationError(message="Bad kind", kind="x")
        assert e.message == "Bad kind"
        assert e.data == {"kind": "x"}


class TestMoney:
    @pytest.mark.parametrize(
        "amount, cents",
        [
            (500, 50_000),
            ("19.99", 1_999),
            (19.99, 1_999),
            (Decimal("0.005"), 1),
            ("50000.01", 5_000_001),
        ],
    )
    def test_to_cents(self, amount, cents):
        assert to_cents(amount) == cents

    @pytest.mark.parametrize("amount", ["abc", True])
    def test_to_cents_rejects(self, amount):
        with pytest.raises(ValidationError):
            to_cents(amount)

    def test_format_cents(self):
        assert format_cents(150_000) == "S$1,500.00"
        assert format_cents(5, currency="") == "0.05"


# ═══════════════════════════════════════════════════════════════════
# Management commands
# ═══════════════════════════════════════════════════════════════════


class TestCommands:
    def test_daily_batch(self, engine, funded_user, t0):
        voucher = engine.redeem(funded_user, "voucher-500", now=t0)
        out = StringIO()

        as_of = (t0 + relativedelta(months=13)).isoformat()
        call_command("rewardman_daily", "--as-of", as_of, stdout=out)

        assert "Expired 1 vouchers and wrote 1 point expiry entries." in out.getvalue()
        assert Voucher.objects.get(pk=voucher.pk).status == "expired"
        assert PointsLedgerEntry.objects.get(kind="expiry").points == -5_000

    def test_daily_batch_rejects_bad_date(self):
        with pytest.raises(CommandError):
            call_command("rewardman_daily", "--as-of", "yesterday")

    def test_tier_review(self, ledger, t0):
        ledger.record_order("USR-A", "ORD-1", 6_000_000, 1, occurred_at=t0)
        ledger.record_order("USR-B", "ORD-2", 100, 1, occurred_at=t0)
        out = StringIO()

        call_command("rewardman_tier_review", "--as-of", t0.isoformat(), stdout=out)

        assert "Reviewed tiers for 2 users." in out.getvalue()
        assert TierStatus.objects.get(user_ref="USR-A").tier == "silver"

    def test_tier_review_single_user(self, ledger, t0):
        ledger.record_order("USR-A", "ORD-1", 25_000_000, 1, occurred_at=t0)
        out = StringIO()

        call_command("rewardman_tier_review", "--as-of", t0.isoformat(), "--user", "USR-A", stdout=out)

        assert "USR-A: gold" in out.getvalue()


# ═══════════════════════════════════════════════════════════════════
# Admin actions
# ═══════════════════════════════════════════════════════════════════


class TestAdminActions:
    def test_cancel_and_refund_action(self, engine, ledger, funded_user, t0):
        voucher = engine.redeem(funded_user, "voucher-500", now=t0)
        model_admin = admin.site._registry[Voucher]
        request = RequestFactory().post("/")

        with patch.object(model_admin, "message_user") as message_user:
            model_admin.cancel_and_refund_vouchers(request, Voucher.objects.all())

        assert Voucher.objects.get(pk=voucher.pk).status == "cancelled"
        assert ledger.balance_as_of(funded_user) == 25_000
        message_user.assert_called_once_with(request, "1 voucher(s) cancelled.")

    def test_cancel_action_reports_failures(self, engine, funded_user, t0):
        voucher = engine.redeem(funded_user, "voucher-500", now=t0)
        engine.apply_to_order(voucher.pk, "ORD-1", 10_000, now=t0)
        model_admin = admin.site._registry[Voucher]
        request = RequestFactory().post("/")

        with patch.object(model_admin, "message_user") as message_user:
            model_admin.cancel_vouchers(request, Voucher.objects.all())

        assert message_user.call_count == 2
        assert Voucher.objects.get(pk=voucher.pk).status == "used"

    def test_closed_report_notes_read_only(self, reconciler, t0):
        report = reconciler.report(USER, "ORD-9", 120, "Missing", now=t0)
        model_admin = admin.site._registry[type(report)]
        request = RequestFactory().get("/")

        assert "admin_notes" not in model_admin.get_readonly_fields(request, report)

        reconciler.begin_investigation(report.pk)
        closed = reconciler.reject(report.pk, now=t0)
        assert "admin_notes" in model_admin.get_readonly_fields(request, closed)

    def test_report_actions(self, reconciler, ledger, t0):
        report = reconciler.report(USER, "ORD-9", 120, "Missing", now=t0)
        model_admin = admin.site._registry[type(report)]
        request = RequestFactory().post("/")
        queryset = type(report).objects.all()

        with patch.object(model_admin, "message_user"):
            model_admin.begin_investigation(request, queryset)
            model_admin.resolve_reports(request, queryset)

        assert reconciler.get(report.pk).status == "resolved"
        assert ledger.balance_as_of(USER) == 120
