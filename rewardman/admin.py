"""Rewardman admin.

The ledger is read-only here. Voucher cancellation and the missing
points workflow go through the services so every rule still applies.
"""

from django.contrib import admin, messages
from django.utils.html import format_html

from rewardman.exceptions import RewardmanError
from rewardman.models import (
    MissingPointsReport,
    PointsAccount,
    PointsLedgerEntry,
    TierStatus,
    Voucher,
)
from rewardman.services import MissingPointsReconciler, VoucherEngine
from rewardman.utils import format_cents


class ReadOnlyMixin:
    def has_add_permission(self, request, obj=None):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False


# ===========================================
# Ledger
# ===========================================


@admin.register(PointsAccount)
class PointsAccountAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = ["user_ref", "created_at"]
    search_fields = ["user_ref"]


@admin.register(PointsLedgerEntry)
class PointsLedgerEntryAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = [
        "occurred_at",
        "user_ref",
        "kind",
        "points_display",
        "expires_at",
        "source_order_ref",
        "description",
    ]
    list_filter = ["kind"]
    search_fields = ["user_ref", "source_order_ref", "description"]
    date_hierarchy = "occurred_at"

    def points_display(self, obj):
        if obj.points > 0:
            return format_html('<span style="color:green">+{}</span>', obj.points)
        return format_html('<span style="color:red">{}</span>', obj.points)

    points_display.short_description = "Points"


@admin.register(TierStatus)
class TierStatusAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = ["user_ref", "tier_badge", "previous_tier", "spend_display", "computed_at"]
    list_filter = ["tier"]
    search_fields = ["user_ref"]

    def tier_badge(self, obj):
        colors = {
            "bronze": "#cd7f32",
            "silver": "#c0c0c0",
            "gold": "#ffd700",
        }
        return format_html(
            '<span style="background:{}; color:#000; padding:2px 8px; '
            'border-radius:3px; font-size:11px;">{}</span>',
            colors.get(obj.tier, "#6c757d"),
            obj.get_tier_display(),
        )

    tier_badge.short_description = "Tier"

    def spend_display(self, obj):
        return format_cents(obj.rolling_spend_q)

    spend_display.short_description = "Rolling spend"


# ===========================================
# Vouchers
# ===========================================


@admin.register(Voucher)
class VoucherAdmin(ReadOnlyMixin, admin.ModelAdmin):
    list_display = [
        "code",
        "user_ref",
        "title",
        "points_cost",
        "status",
        "issued_at",
        "expires_at",
        "used_in_order_ref",
    ]
    list_filter = ["status", "catalog_ref"]
    search_fields = ["code", "user_ref", "used_in_order_ref"]
    actions = ["cancel_vouchers", "cancel_and_refund_vouchers"]

    @admin.action(description="Cancel selected vouchers")
    def cancel_vouchers(self, request, queryset):
        self._cancel(request, queryset, refund=False)

    @admin.action(description="Cancel selected vouchers and refund points")
    def cancel_and_refund_vouchers(self, request, queryset):
        self._cancel(request, queryset, refund=True)

    def _cancel(self, request, queryset, refund):
        engine = VoucherEngine()
        done = 0
        for voucher in queryset:
            try:
                engine.cancel(voucher.pk, refund=refund)
                done += 1
            except RewardmanError as e:
                self.message_user(request, f"{voucher.code}: {e.message}", messages.WARNING)
        self.message_user(request, f"{done} voucher(s) cancelled.")


# ===========================================
# Missing points
# ===========================================


@admin.register(MissingPointsReport)
class MissingPointsReportAdmin(admin.ModelAdmin):
    list_display = [
        "reported_at",
        "user_ref",
        "order_ref",
        "expected_points",
        "credited_points",
        "status",
    ]
    list_filter = ["status"]
    search_fields = ["user_ref", "order_ref"]
    fields = [
        "user_ref",
        "order_ref",
        "order_date",
        "expected_points",
        "reason",
        "status",
        "reported_at",
        "resolved_at",
        "credited_points",
        "correction_entry",
        "admin_notes",
    ]
    readonly_fields = [f for f in fields if f != "admin_notes"]
    actions = ["begin_investigation", "resolve_reports", "reject_reports"]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None and not obj.is_open:
            return self.fields
        return self.readonly_fields

    def has_add_permission(self, request):
        return False

    def has_delete_permission(self, request, obj=None):
        return False

    @admin.action(description="Begin investigation")
    def begin_investigation(self, request, queryset):
        self._run(request, queryset, lambda r, report: r.begin_investigation(report.pk))

    @admin.action(description="Resolve and credit expected points")
    def resolve_reports(self, request, queryset):
        self._run(request, queryset, lambda r, report: r.resolve(report.pk))

    @admin.action(description="Reject")
    def reject_reports(self, request, queryset):
        self._run(request, queryset, lambda r, report: r.reject(report.pk))

    def _run(self, request, queryset, step):
        reconciler = MissingPointsReconciler()
        done = 0
        for report in queryset:
            try:
                step(reconciler, report)
                done += 1
            except RewardmanError as e:
                self.message_user(request, f"{report.order_ref}: {e.message}", messages.WARNING)
        self.message_user(request, f"{done} report(s) updated.")
