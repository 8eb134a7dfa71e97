"""Management command for the quarterly tier review."""

from django.core.management.base import BaseCommand, CommandError
from django.utils import timezone
from django.utils.dateparse import parse_datetime

from rewardman.services import TierCalculator


class Command(BaseCommand):
    help = "Recompute membership tiers from rolling spend"

    def add_arguments(self, parser):
        parser.add_argument("--as-of", default=None, help="ISO datetime to run as (default: now)")
        parser.add_argument("--user", default=None, help="Review a single user")

    def handle(self, *args, **options):
        as_of = None
        if options["as_of"]:
            as_of = parse_datetime(options["as_of"])
            if as_of is None:
                raise CommandError(f"Invalid --as-of value: {options['as_of']}")
            if timezone.is_naive(as_of):
                as_of = timezone.make_aware(as_of)

        calculator = TierCalculator()
        if options["user"]:
            status = calculator.recompute(options["user"], as_of)
            self.stdout.write(self.style.SUCCESS(f"{status.user_ref}: {status.tier}"))
            return

        count = calculator.recompute_all(as_of)
        self.stdout.write(self.style.SUCCESS(f"Reviewed tiers for {count} users."))
