# hospital_cabins/services/status.py
"""
Booking lifecycle.

    PENDING -> CONFIRMED -> CHECKED_IN -> CHECKED_OUT
    PENDING | CONFIRMED | CHECKED_IN -> CANCELLED

CHECKED_OUT and CANCELLED are terminal. Admins drive the forward steps;
patients may cancel their own bookings and admins may cancel any.
"""
import logging
from decimal import Decimal
from typing import Optional

from sqlalchemy.orm import Session

from hospital_cabins import models
from hospital_cabins.clock import Clock
from hospital_cabins.errors import NotFoundError, PermissionDeniedError, UnavailableError, ValidationError
from hospital_cabins.money import to_cents
from hospital_cabins.services.availability import REASON_CONFLICT, find_conflicting_bookings
from hospital_cabins.services.bookings import BookingOutcome, lock_cabin, run_booking_operation

logger = logging.getLogger(__name__)

Status = models.BookingStatus

ALLOWED_TRANSITIONS = {
    Status.PENDING: {Status.CONFIRMED, Status.CANCELLED},
    Status.CONFIRMED: {Status.CHECKED_IN, Status.CANCELLED},
    Status.CHECKED_IN: {Status.CHECKED_OUT, Status.CANCELLED},
    Status.CHECKED_OUT: set(),
    Status.CANCELLED: set(),
}

TIMESTAMP_FIELDS = {
    Status.CONFIRMED: "confirmed_at",
    Status.CHECKED_IN: "checked_in_at",
    Status.CHECKED_OUT: "checked_out_at",
    Status.CANCELLED: "cancelled_at",
}


def can_transition(current: Status, new: Status) -> bool:
    return new in ALLOWED_TRANSITIONS[current]


def require_admin(actor: models.User):
    if actor is None or not actor.is_admin:
        raise PermissionDeniedError("Admin access required")


def load_booking(db: Session, booking_id: int) -> models.CabinBooking:
    booking = (
        db.query(models.CabinBooking)
        .filter(models.CabinBooking.id == booking_id)
        .with_for_update()
        .first()
    )
    if booking is None:
        raise NotFoundError("Booking not found")
    return booking


def apply_status(booking: models.CabinBooking, new_status: Status, moment):
    booking.status = new_status
    setattr(booking, TIMESTAMP_FIELDS[new_status], moment)


def update_booking_status(
    db: Session,
    booking_id: int,
    new_status,
    actor: models.User,
    clock: Clock,
    notes: Optional[str] = None,
) -> BookingOutcome:
    try:
        new_status = Status(new_status)
    except ValueError:
        return BookingOutcome.failed(ValidationError(f"Invalid booking status: {new_status}"))

    if new_status == Status.CANCELLED:
        if actor is None or not actor.is_admin:
            return BookingOutcome.failed(PermissionDeniedError("Admin access required"))
        return cancel_booking(db, booking_id, actor, clock, reason=notes or "")

    def operation():
        require_admin(actor)
        booking = load_booking(db, booking_id)

        if not can_transition(booking.status, new_status):
            raise ValidationError(
                f"Cannot change booking status from {booking.status.value} to {new_status.value}"
            )

        # Only the first overlapping PENDING booking to be confirmed gets the cabin
        if new_status == Status.CONFIRMED:
            lock_cabin(db, booking.cabin_id)
            conflicts = find_conflicting_bookings(
                db,
                booking.cabin_id,
                booking.check_in_date,
                booking.check_out_date,
                exclude_booking_id=booking.id,
            )
            if conflicts:
                raise UnavailableError(REASON_CONFLICT)

        apply_status(booking, new_status, clock.now())
        if notes:
            booking.notes = notes
        logger.info("Booking %s moved to %s", booking.booking_number, new_status.value)
        return booking

    return run_booking_operation(db, f"status:{new_status.value}", operation)


def cancel_booking(db: Session, booking_id: int, actor: models.User, clock: Clock, reason: str = "") -> BookingOutcome:
    def operation():
        if actor is None:
            raise PermissionDeniedError("Authentication required")
        booking = load_booking(db, booking_id)

        # Non-owners get the same answer as for a missing booking
        if not actor.is_admin and booking.patient_id != actor.id:
            raise NotFoundError("Booking not found")
        if booking.status == Status.CANCELLED:
            raise ValidationError("Booking is already cancelled")
        if booking.status == Status.CHECKED_OUT:
            raise ValidationError("Cannot cancel completed booking")

        apply_status(booking, Status.CANCELLED, clock.now())
        booking.notes = f"Cancelled: {reason}" if reason else "Cancelled by user"
        logger.info("Booking %s cancelled by user %s", booking.booking_number, actor.id)
        return booking

    return run_booking_operation(db, "cancelled", operation)


def update_booking_notes(db: Session, booking_id: int, notes: str, actor: models.User) -> BookingOutcome:
    def operation():
        require_admin(actor)
        booking = load_booking(db, booking_id)
        booking.notes = notes
        return booking

    return run_booking_operation(db, "notes", operation)


def update_payment_status(
    db: Session,
    booking_id: int,
    payment_status,
    actor: models.User,
    clock: Clock,
    paid_amount: Optional[Decimal] = None,
) -> BookingOutcome:
    try:
        payment_status = models.PaymentStatus(payment_status)
    except ValueError:
        return BookingOutcome.failed(ValidationError(f"Invalid payment status: {payment_status}"))

    def operation():
        require_admin(actor)
        booking = load_booking(db, booking_id)
        booking.payment_status = payment_status

        if paid_amount is not None:
            cents = to_cents(paid_amount)
            if cents < 0:
                raise ValidationError("Paid amount cannot be negative")
            if cents > 0:
                booking.paid_amount_cents = cents
        if payment_status == models.PaymentStatus.PAID:
            booking.paid_at = clock.now()
        return booking

    return run_booking_operation(db, f"payment:{payment_status.value}", operation)
