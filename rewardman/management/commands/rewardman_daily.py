"""Management command for the daily expiry batch."""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from rewardman.services import ExpiryScheduler, VoucherEngine


class Command(BaseCommand):
    help = "Expire stale vouchers and write off expired points"

    def add_arguments(self, parser):
        parser.add_argument(
            "--as-of",
            default=None,
            help="ISO datetime to run as (default: now)",
        )

    def handle(self, *args, **options):
        as_of = None
        if options["as_of"]:
            as_of = parse_datetime(options["as_of"])
            if as_of is None:
                raise CommandError(f"Invalid --as-of value: {options['as_of']}")
            if timezone.is_naive(as_of):
                as_of = timezone.make_aware(as_of)

        vouchers = VoucherEngine().expire_stale_vouchers(as_of)
        entries = ExpiryScheduler().materialize_all(as_of)
        self.stdout.write(
            self.style.SUCCESS(
                f"Expired {vouchers} vouchers and wrote {entries} point expiry entries."
            )
        )
