from datetime import date, timedelta
from itertools import product

import pytest
from sqlalchemy.exc import OperationalError

from hospital_cabins import models
from hospital_cabins.errors import AvailabilityLookupError
from hospital_cabins.services import availability
from hospital_cabins.services.availability import (
    REASON_CABIN_UNAVAILABLE,
    REASON_CONFLICT,
    REASON_INVALID_RANGE,
    REASON_OUTSIDE_WINDOW,
    check_availability,
    dates_overlap,
)

D = date.fromisoformat


def test_overlap_predicate_matches_definition_over_small_offsets():
    base = date(2025, 1, 1)
    offsets = range(0, 7)
    for a, b, c, e in product(offsets, repeat=4):
        if not (a < b and c < e):
            continue
        days_ab = {a + i for i in range(b - a)}
        days_ce = {c + i for i in range(e - c)}
        expected = bool(days_ab & days_ce)
        got = dates_overlap(
            base + timedelta(days=a), base + timedelta(days=b),
            base + timedelta(days=c), base + timedelta(days=e),
        )
        assert got == expected, (a, b, c, e)
        assert got == (a < e and c < b)


def test_unrestricted_cabin_is_available(db, make_cabin):
    cabin = make_cabin()
    result = check_availability(db, cabin.id, D("2025-06-01"), D("2025-06-04"))
    assert result.available is True
    assert result.reason is None


def test_invalid_range_is_rejected_before_any_lookup(db, make_cabin):
    cabin = make_cabin()
    same_day = check_availability(db, cabin.id, D("2025-06-01"), D("2025-06-01"))
    reversed_range = check_availability(db, cabin.id, D("2025-06-05"), D("2025-06-01"))

    assert same_day.available is False and same_day.reason == REASON_INVALID_RANGE
    assert reversed_range.available is False and reversed_range.reason == REASON_INVALID_RANGE


def test_missing_or_inactive_cabin(db, make_cabin):
    inactive = make_cabin(name="Closed", is_active=False)

    assert check_availability(db, 9999, D("2025-06-01"), D("2025-06-02")).reason == REASON_CABIN_UNAVAILABLE
    assert check_availability(db, inactive.id, D("2025-06-01"), D("2025-06-02")).reason == REASON_CABIN_UNAVAILABLE


def test_overlapping_confirmed_booking_conflicts(db, make_cabin, make_booking, patient):
    cabin = make_cabin()
    make_booking(cabin, patient, D("2025-06-02"), D("2025-06-05"))

    result = check_availability(db, cabin.id, D("2025-06-01"), D("2025-06-03"))

    assert result.available is False
    assert result.reason == REASON_CONFLICT
    assert "conflict" in result.reason.lower()


def test_back_to_back_turnover_is_allowed(db, make_cabin, make_booking, patient):
    cabin = make_cabin()
    make_booking(cabin, patient, D("2025-06-02"), D("2025-06-05"))

    after = check_availability(db, cabin.id, D("2025-06-05"), D("2025-06-07"))
    before = check_availability(db, cabin.id, D("2025-05-30"), D("2025-06-02"))
    one_day_overlap = check_availability(db, cabin.id, D("2025-06-04"), D("2025-06-07"))

    assert after.available is True
    assert before.available is True
    assert one_day_overlap.available is False


def test_checked_in_bookings_block_but_pending_and_cancelled_do_not(db, make_cabin, make_booking, patient):
    cabin = make_cabin()
    make_booking(cabin, patient, D("2025-06-10"), D("2025-06-12"), status=models.BookingStatus.PENDING)
    make_booking(cabin, patient, D("2025-06-10"), D("2025-06-12"), status=models.BookingStatus.CANCELLED)
    make_booking(cabin, patient, D("2025-06-10"), D("2025-06-12"), status=models.BookingStatus.CHECKED_OUT)

    assert check_availability(db, cabin.id, D("2025-06-10"), D("2025-06-12")).available is True

    make_booking(cabin, patient, D("2025-06-11"), D("2025-06-13"), status=models.BookingStatus.CHECKED_IN)
    assert check_availability(db, cabin.id, D("2025-06-10"), D("2025-06-12")).available is False


def test_stay_must_fit_inside_a_single_period(db, make_cabin, make_period):
    cabin = make_cabin(name="C102")
    make_period(cabin, D("2025-07-01"), D("2025-07-10"))

    inside = check_availability(db, cabin.id, D("2025-07-05"), D("2025-07-09"))
    spanning = check_availability(db, cabin.id, D("2025-07-08"), D("2025-07-12"))
    whole_period = check_availability(db, cabin.id, D("2025-07-01"), D("2025-07-10"))

    assert inside.available is True
    assert spanning.available is False
    assert spanning.reason == REASON_OUTSIDE_WINDOW
    assert whole_period.available is True


def test_adjacent_periods_cannot_be_combined(db, make_cabin, make_period):
    cabin = make_cabin()
    make_period(cabin, D("2025-07-01"), D("2025-07-10"))
    make_period(cabin, D("2025-07-10"), D("2025-07-20"))

    result = check_availability(db, cabin.id, D("2025-07-08"), D("2025-07-12"))

    assert result.available is False
    assert result.reason == REASON_OUTSIDE_WINDOW


def test_inactive_periods_do_not_restrict(db, make_cabin, make_period):
    cabin = make_cabin()
    make_period(cabin, D("2025-07-01"), D("2025-07-10"), is_active=False)

    assert check_availability(db, cabin.id, D("2025-08-01"), D("2025-08-03")).available is True


def test_booking_conflict_still_applies_inside_a_period(db, make_cabin, make_period, make_booking, patient):
    cabin = make_cabin()
    make_period(cabin, D("2025-07-01"), D("2025-07-10"))
    make_booking(cabin, patient, D("2025-07-03"), D("2025-07-05"))

    result = check_availability(db, cabin.id, D("2025-07-04"), D("2025-07-06"))

    assert result.available is False
    assert result.reason == REASON_CONFLICT


def test_check_is_idempotent(db, make_cabin, make_booking, patient):
    cabin = make_cabin()
    make_booking(cabin, patient, D("2025-06-02"), D("2025-06-05"))

    first = check_availability(db, cabin.id, D("2025-06-01"), D("2025-06-03"))
    second = check_availability(db, cabin.id, D("2025-06-01"), D("2025-06-03"))

    assert first == second


class BrokenSession:
    def query(self, *args, **kwargs):
        raise OperationalError("SELECT 1", {}, Exception("database is down"))


def test_lookup_failure_is_not_reported_as_unavailable():
    with pytest.raises(AvailabilityLookupError):
        check_availability(BrokenSession(), 1, D("2025-06-01"), D("2025-06-03"))


def test_available_ranges_without_periods(db, make_cabin):
    cabin = make_cabin()
    ranges = availability.available_date_ranges(db, cabin.id, D("2025-05-20"))

    assert ranges.has_restrictions is False
    assert ranges.ranges is None


def test_available_ranges_split_around_bookings(db, make_cabin, make_period, make_booking, patient):
    cabin = make_cabin()
    make_period(cabin, D("2025-07-01"), D("2025-07-20"))
    make_period(cabin, D("2025-04-01"), D("2025-04-30"))  # already over
    make_booking(cabin, patient, D("2025-07-05"), D("2025-07-08"))
    make_booking(cabin, patient, D("2025-07-08"), D("2025-07-10"))
    make_booking(cabin, patient, D("2025-07-15"), D("2025-07-25"))
    make_booking(cabin, patient, D("2025-07-11"), D("2025-07-12"), status=models.BookingStatus.PENDING)

    ranges = availability.available_date_ranges(db, cabin.id, D("2025-05-20"))

    assert ranges.has_restrictions is True
    assert [(r.start_date, r.end_date) for r in ranges.ranges] == [
        (D("2025-07-01"), D("2025-07-05")),
        (D("2025-07-10"), D("2025-07-15")),
    ]


def test_disabled_dates_and_single_date_check(db, make_cabin, make_period, make_booking, patient):
    cabin = make_cabin()
    today = D("2025-07-01")
    make_period(cabin, D("2025-07-02"), D("2025-07-06"))
    make_booking(cabin, patient, D("2025-07-03"), D("2025-07-04"))

    ranges, disabled = availability.disabled_dates(db, cabin.id, today, horizon_days=7)

    assert ranges.has_restrictions is True
    assert disabled == [
        D("2025-07-01"), D("2025-07-03"), D("2025-07-06"), D("2025-07-07"), D("2025-07-08"),
    ]
    assert availability.is_date_available(db, cabin.id, D("2025-07-02"), today) is True
    assert availability.is_date_available(db, cabin.id, D("2025-07-03"), today) is False


def test_unrestricted_cabin_has_no_disabled_dates(db, make_cabin):
    cabin = make_cabin()
    _, disabled = availability.disabled_dates(db, cabin.id, D("2025-07-01"))
    assert disabled == []
    assert availability.is_date_available(db, cabin.id, D("2025-09-09"), D("2025-07-01")) is True


def test_search_returns_free_matching_cabins_cheapest_first(db, make_cabin, make_booking, make_period, patient):
    deluxe = make_cabin(name="Deluxe", capacity=4, price_cents=25000, cabin_type="DELUXE", amenities=["wifi", "tv"])
    general = make_cabin(name="General", capacity=2, price_cents=8000, amenities=["wifi"])
    booked = make_cabin(name="Booked", capacity=2, price_cents=5000, amenities=["wifi"])
    windowed = make_cabin(name="Windowed", capacity=2, price_cents=6000, amenities=["wifi"])
    make_cabin(name="Closed", price_cents=1000, is_active=False)
    make_booking(booked, patient, D("2025-06-01"), D("2025-06-03"))
    make_period(windowed, D("2025-08-01"), D("2025-08-31"))

    found = availability.search_available_cabins(db, D("2025-06-01"), D("2025-06-03"))
    assert [c.name for c in found] == ["General", "Deluxe"]

    wifi_tv = availability.search_available_cabins(
        db, D("2025-06-01"), D("2025-06-03"), availability.CabinFilters(amenities=["wifi", "tv"])
    )
    assert [c.id for c in wifi_tv] == [deluxe.id]

    roomy = availability.search_available_cabins(
        db, D("2025-06-01"), D("2025-06-03"), availability.CabinFilters(capacity=3)
    )
    assert [c.id for c in roomy] == [deluxe.id]

    cheap = availability.search_available_cabins(
        db, D("2025-06-01"), D("2025-06-03"), availability.CabinFilters(max_price_cents=10000)
    )
    assert [c.id for c in cheap] == [general.id]


def test_ranges_start_no_earlier_than_today(db, make_cabin, make_period):
    cabin = make_cabin()
    today = D("2025-05-20")
    make_period(cabin, D("2025-05-10"), D("2025-05-25"))

    ranges = availability.available_date_ranges(db, cabin.id, today)

    assert [(r.start_date, r.end_date) for r in ranges.ranges] == [(today, D("2025-05-25"))]
    assert availability.is_date_available(db, cabin.id, D("2025-05-15"), today) is False
    assert availability.is_date_available(db, cabin.id, today, today) is True
