# hospital_cabins/services/availability.py
"""
Cabin availability.

A cabin is bookable for ``[check_in, check_out)`` when it is active, the
stay fits entirely inside one of its active availability periods (a cabin
with no active period is unrestricted) and no CONFIRMED or CHECKED_IN
booking overlaps the stay. PENDING bookings never block.

Every range in this module is half-open: the check-out day is free for the
next guest.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital_cabins import models
from hospital_cabins.errors import AvailabilityLookupError

logger = logging.getLogger(__name__)

REASON_INVALID_RANGE = "Invalid date range: check-out date must be after check-in date"
REASON_CABIN_UNAVAILABLE = "Cabin not found or inactive"
REASON_OUTSIDE_WINDOW = "Selected dates are outside the permitted availability window"
REASON_CONFLICT = "Selected dates conflict with an existing booking"


@dataclass
class AvailabilityResult:
    available: bool
    reason: Optional[str] = None


@dataclass
class DateRange:
    start_date: date
    end_date: date


@dataclass
class DateRanges:
    has_restrictions: bool
    ranges: Optional[List[DateRange]] = None


@dataclass
class CabinFilters:
    cabin_type: Optional[str] = None
    min_price_cents: Optional[int] = None
    max_price_cents: Optional[int] = None
    capacity: Optional[int] = None
    amenities: List[str] = field(default_factory=list)


def dates_overlap(a, b, c, d) -> bool:
    """True when [a, b) and [c, d) share at least one instant."""
    return a < d and c < b


def period_contains(period, check_in, check_out) -> bool:
    return period.start_date <= check_in and check_out <= period.end_date


def active_periods(db: Session, cabin_id: int):
    return (
        db.query(models.CabinAvailabilityPeriod)
        .filter(
            models.CabinAvailabilityPeriod.cabin_id == cabin_id,
            models.CabinAvailabilityPeriod.is_active.is_(True),
        )
        .order_by(models.CabinAvailabilityPeriod.start_date)
        .all()
    )


def find_conflicting_bookings(
    db: Session,
    cabin_id: int,
    check_in: date,
    check_out: date,
    exclude_booking_id: Optional[int] = None,
):
    query = db.query(models.CabinBooking).filter(
        models.CabinBooking.cabin_id == cabin_id,
        models.CabinBooking.status.in_(models.BLOCKING_STATUSES),
        models.CabinBooking.check_in_date < check_out,
        models.CabinBooking.check_out_date > check_in,
    )
    if exclude_booking_id is not None:
        query = query.filter(models.CabinBooking.id != exclude_booking_id)
    return query.all()


def check_availability(db: Session, cabin_id: int, check_in: date, check_out: date) -> AvailabilityResult:
    """
    Decide whether ``cabin_id`` can be booked for ``[check_in, check_out)``.

    Read-only. An unavailable cabin is a normal result; a failing data store
    raises ``AvailabilityLookupError`` instead.
    """
    if check_in >= check_out:
        return AvailabilityResult(False, REASON_INVALID_RANGE)

    try:
        cabin = db.query(models.Cabin).filter(models.Cabin.id == cabin_id).first()
        if cabin is None or not cabin.is_active:
            return AvailabilityResult(False, REASON_CABIN_UNAVAILABLE)

        periods = active_periods(db, cabin_id)
        if periods and not any(period_contains(p, check_in, check_out) for p in periods):
            return AvailabilityResult(False, REASON_OUTSIDE_WINDOW)

        conflicts = find_conflicting_bookings(db, cabin_id, check_in, check_out)
    except SQLAlchemyError as exc:
        logger.exception("Availability lookup failed for cabin %s", cabin_id)
        raise AvailabilityLookupError("Failed to check availability") from exc

    if conflicts:
        logger.info(
            "Cabin %s unavailable %s..%s: %d conflicting booking(s)",
            cabin_id, check_in, check_out, len(conflicts),
        )
        return AvailabilityResult(False, REASON_CONFLICT)

    return AvailabilityResult(True)


# ✅ Free ranges inside the admin windows, for date pickers
def subtract_bookings(period_start: date, period_end: date, bookings) -> List[DateRange]:
    free = []
    current = period_start

    for booking in sorted(bookings, key=lambda b: b.check_in_date):
        if not dates_overlap(period_start, period_end, booking.check_in_date, booking.check_out_date):
            continue
        if current < booking.check_in_date:
            free.append(DateRange(current, min(booking.check_in_date, period_end)))
        current = max(current, booking.check_out_date)

    if current < period_end:
        free.append(DateRange(current, period_end))

    return [r for r in free if r.start_date < r.end_date]


def available_date_ranges(db: Session, cabin_id: int, today: date) -> DateRanges:
    try:
        periods = (
            db.query(models.CabinAvailabilityPeriod)
            .filter(
                models.CabinAvailabilityPeriod.cabin_id == cabin_id,
                models.CabinAvailabilityPeriod.is_active.is_(True),
                models.CabinAvailabilityPeriod.end_date >= today,
            )
            .order_by(models.CabinAvailabilityPeriod.start_date)
            .all()
        )
        if not periods:
            return DateRanges(has_restrictions=False)

        bookings = (
            db.query(models.CabinBooking)
            .filter(
                models.CabinBooking.cabin_id == cabin_id,
                models.CabinBooking.status.in_(models.BLOCKING_STATUSES),
                models.CabinBooking.check_out_date >= today,
            )
            .order_by(models.CabinBooking.check_in_date)
            .all()
        )
    except SQLAlchemyError as exc:
        logger.exception("Date range lookup failed for cabin %s", cabin_id)
        raise AvailabilityLookupError("Failed to get available date ranges") from exc

    ranges = []
    for period in periods:
        # Past days of a running period are not bookable
        start = max(period.start_date, today)
        ranges.extend(subtract_bookings(start, period.end_date, bookings))

    return DateRanges(has_restrictions=True, ranges=ranges)


def is_date_available(db: Session, cabin_id: int, day: date, today: date) -> bool:
    date_ranges = available_date_ranges(db, cabin_id, today)
    if not date_ranges.has_restrictions:
        return True
    return any(r.start_date <= day < r.end_date for r in date_ranges.ranges)


def disabled_dates(db: Session, cabin_id: int, today: date, horizon_days: int = 365):
    date_ranges = available_date_ranges(db, cabin_id, today)
    if not date_ranges.has_restrictions:
        return date_ranges, []

    disabled = []
    for offset in range(horizon_days + 1):
        day = today + timedelta(days=offset)
        if not any(r.start_date <= day < r.end_date for r in date_ranges.ranges):
            disabled.append(day)
    return date_ranges, disabled


def filter_cabins(query, filters: CabinFilters):
    if filters.cabin_type:
        query = query.filter(models.Cabin.cabin_type == filters.cabin_type)
    if filters.capacity:
        query = query.filter(models.Cabin.capacity >= filters.capacity)
    if filters.min_price_cents is not None:
        query = query.filter(models.Cabin.price_per_night_cents >= filters.min_price_cents)
    if filters.max_price_cents is not None:
        query = query.filter(models.Cabin.price_per_night_cents <= filters.max_price_cents)
    return query


def has_amenities(cabin, required) -> bool:
    return set(required).issubset(set(cabin.amenities or []))


def search_available_cabins(db: Session, check_in: date, check_out: date, filters: CabinFilters = None):
    filters = filters or CabinFilters()
    try:
        query = db.query(models.Cabin).filter(models.Cabin.is_active.is_(True))
        cabins = filter_cabins(query, filters).order_by(models.Cabin.price_per_night_cents).all()
    except SQLAlchemyError as exc:
        logger.exception("Cabin search failed")
        raise AvailabilityLookupError("Failed to fetch available cabins") from exc

    return [
        cabin
        for cabin in cabins
        if has_amenities(cabin, filters.amenities)
        and check_availability(db, cabin.id, check_in, check_out).available
    ]
