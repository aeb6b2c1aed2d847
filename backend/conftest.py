from datetime import timedelta
from decimal import Decimal

import pytest
from django.contrib.auth import get_user_model
from django.utils import timezone
from rest_framework.test import APIClient

from places.models import Perk, Place, RefundTerm

User = get_user_model()


def make_user(email, role):
    return User.objects.create_user(
        username=email,
        email=email,
        password="password123",
        first_name=email.split("@")[0].title(),
        role=role,
    )


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def host(db):
    return make_user("host@example.com", User.HOST)


@pytest.fixture
def guest(db):
    return make_user("guest@example.com", User.CLIENT)


@pytest.fixture
def place(host):
    place = Place.objects.create(
        owner=host,
        title="Loft Studio",
        address="Tashkent, Amir Temur 1",
        currency="UZS",
        hourly_rate=Decimal("50000"),
        minimum_hours=2,
        full_day_hours=8,
        full_day_discount_price=Decimal("300000"),
    )
    RefundTerm.objects.create(place=place, position=0, window_hours=48, refund_percentage=100)
    RefundTerm.objects.create(place=place, position=1, window_hours=24, refund_percentage=50)
    Perk.objects.create(place=place, position=0, name="Projector", is_paid=True, price=Decimal("20000"))
    Perk.objects.create(place=place, position=1, name="Wi-Fi", is_paid=False)
    return place


@pytest.fixture
def future_day():
    return (timezone.localdate() + timedelta(days=10)).isoformat()


def slot(day, start, end):
    return {"date": day, "start_time": start, "end_time": end}


@pytest.fixture
def booking(place, guest, future_day):
    from bookings.services.creation import create_booking

    # 2h x 50,000 = 100,000 base; 5% fee and 3,000 protection plan from test settings
    return create_booking(
        client=guest,
        place=place,
        time_slots=[slot(future_day, "10:00", "12:00")],
        protection_plan_selected=True,
    )


@pytest.fixture
def selected_booking(booking):
    from bookings.services.state_machine import get_state_machine

    return get_state_machine().host_selects(booking.pk).booking
