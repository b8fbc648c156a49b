# hospital_cabins/services/bookings.py
"""
Booking creation and booking queries.

``create_booking`` validates a request against the calendar and the cabin,
prices it and stores a PENDING booking. It never raises: every failure is
reported through ``BookingOutcome``.
"""
import logging
import math
import random
import string
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, List, Optional

from sqlalchemy import exists, func, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from hospital_cabins import models
from hospital_cabins.clock import Clock
from hospital_cabins.config import settings
from hospital_cabins.errors import (
    GENERIC_FAILURE_MESSAGE,
    BookingError,
    InfrastructureError,
    NotFoundError,
    UnavailableError,
    ValidationError,
)
from hospital_cabins.services.availability import REASON_CABIN_UNAVAILABLE, check_availability

logger = logging.getLogger(__name__)

BOOKING_NUMBER_ATTEMPTS = 5
_SUFFIX_ALPHABET = string.ascii_uppercase + string.digits

_listeners: List[Callable] = []


@dataclass
class BookingOutcome:
    success: bool
    booking: Optional[models.CabinBooking] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None

    @classmethod
    def ok(cls, booking):
        return cls(success=True, booking=booking)

    @classmethod
    def failed(cls, exc: BookingError):
        return cls(success=False, error=exc.message, error_kind=exc.kind)


@dataclass
class BookingFilters:
    status: Optional[models.BookingStatus] = None
    cabin_id: Optional[int] = None
    date_from: Optional[date] = None
    date_to: Optional[date] = None


def register_listener(listener: Callable):
    """Subscribe to booking changes (e.g. to refresh cached booking lists)."""
    _listeners.append(listener)
    return listener


def on_bookings_changed(event: str, booking: models.CabinBooking):
    logger.debug("Booking %s changed: %s", booking.booking_number, event)
    for listener in list(_listeners):
        try:
            listener(event, booking)
        except Exception:
            logger.exception("Booking listener %r failed on %s", listener, event)


def run_booking_operation(db: Session, event: str, operation: Callable) -> BookingOutcome:
    """Run ``operation`` in one transaction and fold every failure into an outcome."""
    try:
        booking = operation()
        db.commit()
        db.refresh(booking)
    except InfrastructureError as exc:
        db.rollback()
        logger.error("Booking %s failed: %s", event, exc.message)
        return BookingOutcome.failed(InfrastructureError(GENERIC_FAILURE_MESSAGE))
    except BookingError as exc:
        db.rollback()
        logger.info("Booking %s rejected: %s", event, exc.message)
        return BookingOutcome.failed(exc)
    except SQLAlchemyError:
        db.rollback()
        logger.exception("Data store failure during booking %s", event)
        return BookingOutcome.failed(InfrastructureError(GENERIC_FAILURE_MESSAGE))

    on_bookings_changed(event, booking)
    return BookingOutcome.ok(booking)


def calculate_nights(check_in: date, check_out: date) -> int:
    return math.ceil((check_out - check_in).total_seconds() / 86400)


def generate_booking_number(now: datetime, prefix: str = None) -> str:
    prefix = settings.BOOKING_NUMBER_PREFIX if prefix is None else prefix
    timestamp = str(int(now.timestamp() * 1000))[-6:]
    suffix = "".join(random.choices(_SUFFIX_ALPHABET, k=4))
    return f"{prefix}{timestamp}{suffix}".upper()


def allocate_booking_number(db: Session, clock: Clock) -> str:
    for _ in range(BOOKING_NUMBER_ATTEMPTS):
        number = generate_booking_number(clock.now())
        taken = db.query(exists().where(models.CabinBooking.booking_number == number)).scalar()
        if not taken:
            return number
        logger.warning("Booking number %s already taken, regenerating", number)
    raise InfrastructureError("Could not allocate a booking number")


def lock_cabin(db: Session, cabin_id: int) -> Optional[models.Cabin]:
    """
    Serialise check-then-write sequences for one cabin.

    Row locks come from SELECT ... FOR UPDATE. SQLite ignores FOR UPDATE and
    only opens a transaction on the first write, so there a no-op UPDATE of
    the cabin row takes the database write lock before anything is read.
    Another writer then waits (or fails with "database is locked") until
    this transaction ends.
    """
    if db.get_bind().dialect.name == "sqlite":
        db.execute(
            update(models.Cabin)
            .where(models.Cabin.id == cabin_id)
            .values(updated_at=models.Cabin.updated_at)
            .execution_options(synchronize_session=False)
        )
    return db.query(models.Cabin).filter(models.Cabin.id == cabin_id).with_for_update().first()


def create_booking(db: Session, request, requester_id: int, clock: Clock) -> BookingOutcome:
    """
    Validate, price and store a cabin booking for ``requester_id``.

    ``request`` carries cabin_id, check_in_date, check_out_date,
    number_of_guests, guest contact fields, special_requests and
    payment_method. Checks run in order and the first failure wins.
    """
    def operation():
        check_in = request.check_in_date
        check_out = request.check_out_date

        if check_in < clock.today():
            raise ValidationError("Check-in date cannot be in the past")
        if check_in >= check_out:
            raise ValidationError("Check-out date must be after check-in date")

        cabin = lock_cabin(db, request.cabin_id)

        availability = check_availability(db, request.cabin_id, check_in, check_out)
        if not availability.available:
            if availability.reason == REASON_CABIN_UNAVAILABLE:
                raise NotFoundError(availability.reason)
            raise UnavailableError(availability.reason)

        if cabin is None or not cabin.is_active:
            raise NotFoundError("Cabin not found or not available")

        guests = request.number_of_guests
        if guests is None or guests < 1:
            raise ValidationError("At least one guest is required")
        if guests > cabin.capacity:
            raise ValidationError(f"Number of guests exceeds cabin capacity ({cabin.capacity})")
        if not (request.guest_name or "").strip():
            raise ValidationError("Guest name is required")

        nights = calculate_nights(check_in, check_out)
        booking = models.CabinBooking(
            booking_number=allocate_booking_number(db, clock),
            cabin_id=cabin.id,
            patient_id=requester_id,
            check_in_date=check_in,
            check_out_date=check_out,
            number_of_nights=nights,
            number_of_guests=guests,
            guest_name=request.guest_name.strip(),
            guest_phone=request.guest_phone,
            guest_email=request.guest_email,
            special_requests=request.special_requests,
            payment_method=request.payment_method,
            total_amount_cents=nights * cabin.price_per_night_cents,
            status=models.BookingStatus.PENDING,
            payment_status=models.PaymentStatus.PENDING,
            created_at=clock.now(),
        )
        db.add(booking)
        db.flush()
        logger.info(
            "Booking %s created for cabin %s (%s..%s, %d nights)",
            booking.booking_number, cabin.id, check_in, check_out, nights,
        )
        return booking

    return run_booking_operation(db, "created", operation)


# ✅ Queries
def list_patient_bookings(db: Session, patient_id: int):
    return (
        db.query(models.CabinBooking)
        .filter(models.CabinBooking.patient_id == patient_id)
        .order_by(models.CabinBooking.created_at.desc(), models.CabinBooking.id.desc())
        .all()
    )


def get_booking(db: Session, booking_id: int, actor: models.User) -> BookingOutcome:
    query = db.query(models.CabinBooking).filter(models.CabinBooking.id == booking_id)
    if not actor.is_admin:
        query = query.filter(models.CabinBooking.patient_id == actor.id)

    try:
        booking = query.first()
    except SQLAlchemyError:
        logger.exception("Failed to fetch booking %s", booking_id)
        return BookingOutcome.failed(InfrastructureError(GENERIC_FAILURE_MESSAGE))

    if booking is None:
        return BookingOutcome.failed(NotFoundError("Booking not found"))
    return BookingOutcome.ok(booking)


def list_all_bookings(db: Session, filters: BookingFilters = None):
    filters = filters or BookingFilters()
    query = db.query(models.CabinBooking)

    if filters.status:
        query = query.filter(models.CabinBooking.status == filters.status)
    if filters.cabin_id:
        query = query.filter(models.CabinBooking.cabin_id == filters.cabin_id)
    if filters.date_from:
        query = query.filter(models.CabinBooking.check_in_date >= filters.date_from)
    if filters.date_to:
        query = query.filter(models.CabinBooking.check_out_date <= filters.date_to)

    return query.order_by(models.CabinBooking.created_at.desc(), models.CabinBooking.id.desc()).all()


def booking_stats(db: Session) -> dict:
    counts = dict(
        db.query(models.CabinBooking.status, func.count(models.CabinBooking.id))
        .group_by(models.CabinBooking.status)
        .all()
    )
    revenue = (
        db.query(func.coalesce(func.sum(models.CabinBooking.paid_amount_cents), 0))
        .filter(models.CabinBooking.payment_status == models.PaymentStatus.PAID)
        .scalar()
    )
    return {
        "total_bookings": sum(counts.values()),
        "pending_bookings": counts.get(models.BookingStatus.PENDING, 0),
        "confirmed_bookings": counts.get(models.BookingStatus.CONFIRMED, 0),
        "checked_in_bookings": counts.get(models.BookingStatus.CHECKED_IN, 0),
        "checked_out_bookings": counts.get(models.BookingStatus.CHECKED_OUT, 0),
        "cancelled_bookings": counts.get(models.BookingStatus.CANCELLED, 0),
        "total_revenue_cents": int(revenue or 0),
    }
