from decimal import Decimal

import pytest

from bookings.exceptions import DurationTooShort, InvalidPerkSelection, InvalidPricingConfig, InvalidTimeSlots
from bookings.services.fees import TimeSlot, calculate_fees, parse_time_slots, quantize_amount
from places.services import PerkOption, PlacePricing


def _pricing(**overrides):
    values = {
        "hourly_rate": Decimal("50000"),
        "minimum_hours": 2,
        "full_day_hours": 8,
        "full_day_discount_price": Decimal("0"),
        "currency": "UZS",
        "perks": (
            PerkOption(name="Projector", is_paid=True, price=Decimal("20000")),
            PerkOption(name="Wi-Fi", is_paid=False, price=Decimal("0")),
        ),
    }
    values.update(overrides)
    return PlacePricing(**values)


def _slots(*ranges, day="2030-05-01"):
    return parse_time_slots([{"date": day, "start_time": start, "end_time": end} for start, end in ranges])


@pytest.fixture(autouse=True)
def fee_settings(settings):
    settings.SERVICE_FEE_PERCENT = Decimal("5")
    settings.PROTECTION_PLAN_FEE = Decimal("3000")


def test_total_is_base_plus_service_fee_plus_protection_plan():
    fees = calculate_fees(_pricing(), _slots(("10:00", "12:00")), protection_plan_selected=True)

    assert fees.base_price == Decimal("100000.00")
    assert fees.service_fee == Decimal("5000.00")
    assert fees.protection_plan_fee == Decimal("3000.00")
    assert fees.final_total == Decimal("108000.00")
    assert fees.total_hours == Decimal("2.00")


def test_protection_plan_not_selected_costs_nothing():
    fees = calculate_fees(_pricing(), _slots(("10:00", "12:00")))

    assert fees.protection_plan_fee == Decimal("0.00")
    assert fees.final_total == Decimal("105000.00")


def test_slot_shorter_than_minimum_is_rejected():
    with pytest.raises(DurationTooShort):
        calculate_fees(_pricing(minimum_hours=3), _slots(("10:00", "12:00")))


def test_each_slot_must_meet_minimum_on_its_own():
    slots = _slots(("09:00", "12:00"), ("14:00", "15:00"))
    with pytest.raises(DurationTooShort):
        calculate_fees(_pricing(minimum_hours=2), slots)


def test_full_day_discount_applies_when_cheaper():
    pricing = _pricing(full_day_discount_price=Decimal("300000"))

    fees = calculate_fees(pricing, _slots(("08:00", "18:00")))

    # one full day at 300,000 plus 2 extra hours at 50,000
    assert fees.base_price == Decimal("400000.00")
    assert fees.total_hours == Decimal("10.00")


def test_full_day_discount_never_raises_the_price():
    pricing = _pricing(hourly_rate=Decimal("10000"), full_day_discount_price=Decimal("500000"))

    fees = calculate_fees(pricing, _slots(("08:00", "16:00")))

    assert fees.base_price == Decimal("80000.00")


def test_paid_perks_are_added_and_free_perks_are_not():
    fees = calculate_fees(_pricing(), _slots(("10:00", "12:00")), perks=["Projector", "Wi-Fi"])

    assert fees.perks_fee == Decimal("20000.00")
    assert fees.final_total == fees.base_price + fees.service_fee + fees.perks_fee


def test_unknown_perk_is_rejected():
    with pytest.raises(InvalidPerkSelection):
        calculate_fees(_pricing(), _slots(("10:00", "12:00")), perks=["Sauna"])


def test_service_fee_rounds_half_up(settings):
    settings.SERVICE_FEE_PERCENT = Decimal("2.5")
    pricing = _pricing(hourly_rate=Decimal("33.33"), minimum_hours=1)

    fees = calculate_fees(pricing, _slots(("10:00", "11:00")))

    # 33.33 * 2.5% = 0.83325
    assert fees.service_fee == Decimal("0.83")
    assert fees.final_total == Decimal("34.16")


def test_half_hour_slots_are_priced_by_the_minute():
    fees = calculate_fees(_pricing(), _slots(("10:00", "12:30")))

    assert fees.total_hours == Decimal("2.50")
    assert fees.base_price == Decimal("125000.00")


@pytest.mark.parametrize(
    "overrides",
    [
        {"minimum_hours": 4, "full_day_hours": 3},
        {"hourly_rate": Decimal("-1")},
        {"minimum_hours": 6},
        {"minimum_hours": 0},
    ],
)
def test_inconsistent_pricing_is_rejected(overrides):
    with pytest.raises(InvalidPricingConfig):
        calculate_fees(_pricing(**overrides), _slots(("10:00", "16:00")))


def test_overlapping_or_inverted_slots_are_malformed():
    with pytest.raises(InvalidTimeSlots):
        _slots(("10:00", "13:00"), ("12:00", "14:00"))
    with pytest.raises(InvalidTimeSlots):
        TimeSlot.parse({"date": "2030-05-01", "start_time": "12:00", "end_time": "10:00"})
    with pytest.raises(InvalidTimeSlots):
        parse_time_slots([])


def test_quantize_amount_uses_currency_minor_units(settings):
    settings.CURRENCY_MINOR_UNITS = {"UZS": 0, "USD": 2}

    assert quantize_amount(Decimal("1234.5"), "UZS") == Decimal("1235")
    assert quantize_amount(Decimal("1.005"), "USD") == Decimal("1.01")
