from datetime import timedelta

from django.conf import settings
from django.core.management.base import BaseCommand
from django.utils import timezone

from bookings.exceptions import InvalidTransition
from bookings.models import Booking
from bookings.services.state_machine import get_state_machine


class Command(BaseCommand):
    help = "Cancel bookings that were selected for payment but never paid within the allowed time."

    def add_arguments(self, parser):
        parser.add_argument(
            "--hours",
            type=int,
            default=None,
            help="Override SELECTED_BOOKING_TTL_HOURS for this run.",
        )

    def handle(self, *args, **options):
        hours = options["hours"] if options["hours"] is not None else settings.SELECTED_BOOKING_TTL_HOURS
        cutoff = timezone.now() - timedelta(hours=hours)
        stale_ids = list(
            Booking.objects.filter(status=Booking.SELECTED, selected_at__lt=cutoff).values_list("pk", flat=True)
        )

        machine = get_state_machine()
        cancelled = 0
        for booking_id in stale_ids:
            try:
                result = machine.cancel(booking_id, cancelled_by=Booking.CANCELLED_BY_SYSTEM)
            except InvalidTransition:
                # paid or rejected since the query ran
                continue
            if result.changed:
                cancelled += 1

        self.stdout.write(self.style.SUCCESS(f"Cancelled {cancelled} stale selected booking(s)."))
