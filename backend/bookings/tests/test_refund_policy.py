from datetime import timedelta
from decimal import Decimal

import pytest

from bookings.models import Booking
from bookings.services.refund_policy import refund_quote, snapshot_refund_policy
from places.models import Place, RefundTerm


@pytest.mark.django_db
def test_snapshot_copies_terms_longest_window_first(place):
    RefundTerm.objects.create(place=place, position=5, window_hours=168, refund_percentage=100)

    assert snapshot_refund_policy(place) == [
        {"window_hours": 168, "refund_percentage": 100},
        {"window_hours": 48, "refund_percentage": 100},
        {"window_hours": 24, "refund_percentage": 50},
    ]


@pytest.mark.django_db
def test_place_without_terms_snapshots_as_non_refundable(host):
    place = Place.objects.create(owner=host, title="Garage", hourly_rate=Decimal("10000"))

    assert snapshot_refund_policy(place) == []


@pytest.mark.django_db
def test_booking_keeps_its_snapshot_after_place_edits(booking, place):
    original = list(booking.refund_policy_snapshot)

    place.refund_terms.all().delete()
    RefundTerm.objects.create(place=place, position=0, window_hours=1, refund_percentage=10)

    booking.refresh_from_db()
    assert booking.refund_policy_snapshot == original
    assert original == [
        {"window_hours": 48, "refund_percentage": 100},
        {"window_hours": 24, "refund_percentage": 50},
    ]


@pytest.mark.django_db
def test_snapshot_cannot_be_edited_through_save(booking):
    booking.refund_policy_snapshot = []
    with pytest.raises(ValueError):
        booking.save()

    booking.refresh_from_db()
    assert len(booking.refund_policy_snapshot) == 2


@pytest.mark.django_db
def test_editable_fields_still_save(booking):
    booking.guest_name = "Aziz"
    booking.save()

    assert Booking.objects.get(pk=booking.pk).guest_name == "Aziz"


@pytest.mark.django_db
@pytest.mark.parametrize(
    "hours_before, percentage",
    [
        (72, 100),
        (48, 100),
        (30, 50),
        (24, 50),
        (5, 0),
    ],
)
def test_refund_quote_picks_largest_window_reached(booking, hours_before, percentage):
    at = booking.check_in - timedelta(hours=hours_before)

    quote = refund_quote(booking, at=at)

    assert quote.refund_percentage == percentage
    expected = (booking.final_total * percentage / 100).quantize(Decimal("0.01"))
    assert quote.refund_amount == expected


@pytest.mark.django_db
def test_refund_quote_after_check_in_is_zero(booking):
    quote = refund_quote(booking, at=booking.check_in + timedelta(hours=1))

    assert quote.hours_before_check_in == Decimal("0.00")
    assert quote.refund_percentage == 0
    assert quote.refund_amount == Decimal("0.00")
    assert quote.window_hours is None
