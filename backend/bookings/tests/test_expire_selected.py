from datetime import timedelta

import pytest
from django.core.management import call_command
from django.utils import timezone

from bookings.models import Booking


@pytest.mark.django_db
def test_stale_selected_bookings_are_cancelled_by_system(selected_booking, booking, settings):
    settings.SELECTED_BOOKING_TTL_HOURS = 24
    Booking.objects.filter(pk=selected_booking.pk).update(selected_at=timezone.now() - timedelta(hours=30))

    call_command("expire_selected_bookings")

    selected_booking.refresh_from_db()
    assert selected_booking.status == Booking.CANCELLED
    assert selected_booking.cancelled_by == Booking.CANCELLED_BY_SYSTEM


@pytest.mark.django_db
def test_recently_selected_bookings_are_left_alone(selected_booking):
    call_command("expire_selected_bookings", hours=1)

    selected_booking.refresh_from_db()
    assert selected_booking.status == Booking.SELECTED
