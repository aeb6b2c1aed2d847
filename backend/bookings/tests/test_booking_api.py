import base64
from urllib.parse import parse_qs, urlparse

import pytest

from bookings.models import Booking
from conftest import make_user, slot


@pytest.mark.django_db
def test_client_creates_booking_with_computed_totals(api_client, guest, place, future_day):
    api_client.force_authenticate(guest)
    payload = {
        "place": place.id,
        "time_slots": [slot(future_day, "10:00", "12:00")],
        "protection_plan_selected": True,
        "perks": ["Projector"],
        "num_guests": 3,
    }

    response = api_client.post("/api/bookings/", payload, format="json")

    assert response.status_code == 201, response.content
    body = response.json()
    assert body["status"] == "pending"
    assert body["is_actionable"] is True
    assert body["base_price"] == "100000.00"
    assert body["perks_fee"] == "20000.00"
    assert body["service_fee"] == "5000.00"
    assert body["protection_plan_fee"] == "3000.00"
    assert body["final_total"] == "128000.00"
    assert body["unique_request_id"].startswith("REQ-")
    assert body["refund_policy_snapshot"][0] == {"window_hours": 48, "refund_percentage": 100}


@pytest.mark.django_db
def test_booking_below_minimum_duration_is_not_created(api_client, guest, place, future_day):
    api_client.force_authenticate(guest)
    payload = {"place": place.id, "time_slots": [slot(future_day, "10:00", "11:00")]}

    response = api_client.post("/api/bookings/", payload, format="json")

    assert response.status_code == 400
    assert Booking.objects.count() == 0


@pytest.mark.django_db
def test_booking_in_the_past_is_rejected(api_client, guest, place):
    api_client.force_authenticate(guest)
    payload = {"place": place.id, "time_slots": [slot("2001-01-01", "10:00", "12:00")]}

    response = api_client.post("/api/bookings/", payload, format="json")

    assert response.status_code == 400


@pytest.mark.django_db
def test_host_cannot_request_bookings(api_client, host, place, future_day):
    api_client.force_authenticate(host)
    payload = {"place": place.id, "time_slots": [slot(future_day, "10:00", "12:00")]}

    response = api_client.post("/api/bookings/", payload, format="json")

    assert response.status_code == 403


@pytest.mark.django_db
def test_host_selects_and_rejects_through_api(api_client, host, booking):
    api_client.force_authenticate(host)

    response = api_client.post(f"/api/bookings/{booking.id}/select/")
    assert response.status_code == 200
    assert response.json()["status"] == "selected"

    response = api_client.post(f"/api/bookings/{booking.id}/reject/")
    assert response.status_code == 200
    assert response.json()["status"] == "rejected"

    response = api_client.post(f"/api/bookings/{booking.id}/select/")
    assert response.status_code == 409
    assert response.json()["status"] == "rejected"


@pytest.mark.django_db
def test_client_cannot_select_own_booking(api_client, guest, booking):
    api_client.force_authenticate(guest)

    response = api_client.post(f"/api/bookings/{booking.id}/select/")

    assert response.status_code == 403


@pytest.mark.django_db
def test_strangers_do_not_see_bookings(api_client, booking):
    stranger = make_user("stranger@example.com", "client")
    api_client.force_authenticate(stranger)

    assert api_client.get("/api/bookings/").json() == []
    assert api_client.get(f"/api/bookings/{booking.id}/").status_code == 404


@pytest.mark.django_db
def test_client_cancel_records_who_cancelled(api_client, guest, booking):
    api_client.force_authenticate(guest)

    response = api_client.post(f"/api/bookings/{booking.id}/cancel/")
    assert response.status_code == 200
    assert response.json()["cancelled_by"] == "client"

    replay = api_client.post(f"/api/bookings/{booking.id}/cancel/")
    assert replay.status_code == 200
    assert replay.json()["cancelled_at"] == response.json()["cancelled_at"]


@pytest.mark.django_db
def test_refund_quote_endpoint(api_client, guest, booking):
    api_client.force_authenticate(guest)

    response = api_client.get(f"/api/bookings/{booking.id}/refund-quote/")

    assert response.status_code == 200
    body = response.json()
    assert body["refund_percentage"] == 100
    assert body["refund_amount"] == "108000.00"
    assert body["window_hours"] == 48


@pytest.mark.django_db
def test_checkout_requires_selected_booking(api_client, guest, booking):
    api_client.force_authenticate(guest)

    response = api_client.post(f"/api/bookings/{booking.id}/checkout/payme/")

    assert response.status_code == 409


@pytest.mark.django_db
def test_payme_checkout_link_encodes_booking_and_tiyin(api_client, guest, selected_booking):
    api_client.force_authenticate(guest)

    response = api_client.post(
        f"/api/bookings/{selected_booking.id}/checkout/payme/",
        {"return_url": "https://app.test/done"},
        format="json",
    )

    assert response.status_code == 200
    url = response.json()["url"]
    assert url.startswith("https://checkout.paycom.uz/")
    decoded = base64.b64decode(url.rsplit("/", 1)[1]).decode()
    assert decoded == (
        f"m=payme-merchant-test;ac.booking_id={selected_booking.id};a=10800000;c=https://app.test/done"
    )


@pytest.mark.django_db
def test_click_checkout_link(api_client, guest, selected_booking):
    api_client.force_authenticate(guest)

    response = api_client.post(f"/api/bookings/{selected_booking.id}/checkout/click/")

    assert response.status_code == 200
    parsed = urlparse(response.json()["url"])
    query = parse_qs(parsed.query)
    assert parsed.path == "/services/pay"
    assert query["service_id"] == ["1001"]
    assert query["merchant_id"] == ["2002"]
    assert query["amount"] == ["108000.00"]
    assert query["transaction_param"] == [str(selected_booking.id)]


@pytest.mark.django_db
def test_unknown_checkout_provider(api_client, guest, selected_booking):
    api_client.force_authenticate(guest)

    response = api_client.post(f"/api/bookings/{selected_booking.id}/checkout/paypal/")

    assert response.status_code == 400
