# Generated migration for the loyalty ledger, vouchers, tiers and reports

import uuid

import django.db.models.deletion
from django.db import migrations, models

import rewardman.models.voucher


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="PointsAccount",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                (
                    "user_ref",
                    models.CharField(
                        help_text="External user identifier (partition key)",
                        max_length=100,
                        unique=True,
                        verbose_name="user",
                    ),
                ),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
            ],
            options={
                "verbose_name": "points account",
                "verbose_name_plural": "points accounts",
            },
        ),
        migrations.CreateModel(
            name="Voucher",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                (
                    "code",
                    models.CharField(
                        default=rewardman.models.voucher.generate_voucher_code,
                        help_text="Confirmation code shown to the customer",
                        max_length=16,
                        unique=True,
                        verbose_name="code",
                    ),
                ),
                ("user_ref", models.CharField(db_index=True, max_length=100, verbose_name="user")),
                ("catalog_ref", models.CharField(max_length=50, verbose_name="catalog entry")),
                ("title", models.CharField(max_length=100, verbose_name="title")),
                ("face_value_q", models.BigIntegerField(verbose_name="face value (cents)")),
                ("points_cost", models.IntegerField(verbose_name="points cost")),
                ("minimum_order_q", models.BigIntegerField(default=0, verbose_name="minimum order (cents)")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("active", "Active"),
                            ("used", "Used"),
                            ("expired", "Expired"),
                            ("cancelled", "Cancelled"),
                        ],
                        db_index=True,
                        default="active",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("issued_at", models.DateTimeField(verbose_name="issued at")),
                ("expires_at", models.DateTimeField(db_index=True, verbose_name="expires at")),
                ("used_at", models.DateTimeField(blank=True, null=True, verbose_name="used at")),
                ("used_in_order_ref", models.CharField(blank=True, max_length=100, verbose_name="used in order")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True, verbose_name="cancelled at")),
            ],
            options={
                "verbose_name": "voucher",
                "verbose_name_plural": "vouchers",
                "ordering": ["-issued_at"],
                "indexes": [
                    models.Index(fields=["user_ref", "status"], name="rm_voucher_user_status"),
                ],
            },
        ),
        migrations.CreateModel(
            name="PointsLedgerEntry",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_ref", models.CharField(db_index=True, max_length=100, verbose_name="user")),
                (
                    "kind",
                    models.CharField(
                        choices=[
                            ("purchase", "Purchase"),
                            ("bonus", "Bonus"),
                            ("referral", "Referral"),
                            ("achievement", "Achievement"),
                            ("redemption", "Redemption"),
                            ("expiry", "Expiry"),
                            ("correction", "Correction"),
                        ],
                        max_length=20,
                        verbose_name="kind",
                    ),
                ),
                (
                    "points",
                    models.IntegerField(
                        help_text="Positive when earned, negative when redeemed/expired/corrected",
                        verbose_name="points",
                    ),
                ),
                (
                    "occurred_at",
                    models.DateTimeField(
                        help_text="Instant the movement counts toward the balance",
                        verbose_name="occurred at",
                    ),
                ),
                (
                    "expires_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Set for positive earning entries only",
                        null=True,
                        verbose_name="expires at",
                    ),
                ),
                ("source_order_ref", models.CharField(blank=True, max_length=100, verbose_name="order")),
                (
                    "order_value_q",
                    models.BigIntegerField(
                        blank=True,
                        help_text="Purchase entries only; drives rolling spend",
                        null=True,
                        verbose_name="order value (cents)",
                    ),
                ),
                ("description", models.CharField(blank=True, max_length=200, verbose_name="description")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="created at")),
                ("created_by", models.CharField(blank=True, max_length=100, verbose_name="created by")),
                (
                    "offsets",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="expiry_entry",
                        to="rewardman.pointsledgerentry",
                        verbose_name="offsets entry",
                    ),
                ),
                (
                    "voucher",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="ledger_entries",
                        to="rewardman.voucher",
                        verbose_name="voucher",
                    ),
                ),
            ],
            options={
                "verbose_name": "ledger entry",
                "verbose_name_plural": "ledger entries",
                "ordering": ["-occurred_at"],
                "indexes": [
                    models.Index(fields=["user_ref", "occurred_at"], name="rm_entry_user_occurred"),
                    models.Index(fields=["kind", "expires_at"], name="rm_entry_kind_expires"),
                ],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("kind", "purchase"), models.Q(("source_order_ref", ""), _negated=True)),
                        fields=("user_ref", "source_order_ref"),
                        name="rewardman_one_purchase_per_order",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="TierStatus",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("user_ref", models.CharField(max_length=100, verbose_name="user")),
                (
                    "tier",
                    models.CharField(
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold")],
                        max_length=20,
                        verbose_name="tier",
                    ),
                ),
                (
                    "previous_tier",
                    models.CharField(
                        blank=True,
                        choices=[("bronze", "Bronze"), ("silver", "Silver"), ("gold", "Gold")],
                        max_length=20,
                        verbose_name="previous tier",
                    ),
                ),
                ("rolling_spend_q", models.BigIntegerField(verbose_name="rolling spend (cents)")),
                ("computed_at", models.DateTimeField(verbose_name="computed at")),
            ],
            options={
                "verbose_name": "tier status",
                "verbose_name_plural": "tier statuses",
                "ordering": ["-computed_at"],
                "indexes": [
                    models.Index(fields=["user_ref", "-computed_at"], name="rm_tier_user_computed"),
                ],
            },
        ),
        migrations.CreateModel(
            name="MissingPointsReport",
            fields=[
                ("id", models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ("user_ref", models.CharField(db_index=True, max_length=100, verbose_name="user")),
                ("order_ref", models.CharField(max_length=100, verbose_name="order")),
                ("order_date", models.DateField(blank=True, null=True, verbose_name="order date")),
                ("expected_points", models.IntegerField(verbose_name="expected points")),
                ("reason", models.TextField(verbose_name="reason")),
                (
                    "status",
                    models.CharField(
                        choices=[
                            ("reported", "Reported"),
                            ("investigating", "Investigating"),
                            ("resolved", "Resolved"),
                            ("rejected", "Rejected"),
                        ],
                        default="reported",
                        max_length=20,
                        verbose_name="status",
                    ),
                ),
                ("reported_at", models.DateTimeField(verbose_name="reported at")),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="resolved at")),
                ("credited_points", models.IntegerField(blank=True, null=True, verbose_name="credited points")),
                ("admin_notes", models.TextField(blank=True, verbose_name="admin notes")),
                (
                    "correction_entry",
                    models.OneToOneField(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="missing_points_report",
                        to="rewardman.pointsledgerentry",
                        verbose_name="correction entry",
                    ),
                ),
            ],
            options={
                "verbose_name": "missing points report",
                "verbose_name_plural": "missing points reports",
                "ordering": ["-reported_at"],
                "constraints": [
                    models.UniqueConstraint(
                        condition=models.Q(("status__in", ["reported", "investigating"])),
                        fields=("user_ref", "order_ref"),
                        name="rewardman_one_open_report_per_order",
                    ),
                ],
            },
        ),
    ]
