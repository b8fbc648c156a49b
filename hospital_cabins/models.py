# hospital_cabins/models.py
import datetime
import enum

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import relationship

from hospital_cabins.database import Base


def utcnow():
    return datetime.datetime.now(datetime.timezone.utc)


class BookingStatus(str, enum.Enum):
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    CHECKED_IN = "CHECKED_IN"
    CHECKED_OUT = "CHECKED_OUT"
    CANCELLED = "CANCELLED"


class PaymentStatus(str, enum.Enum):
    PENDING = "PENDING"
    PAID = "PAID"
    FAILED = "FAILED"
    REFUNDED = "REFUNDED"


# Bookings in these states occupy their cabin. PENDING ones do not.
BLOCKING_STATUSES = (BookingStatus.CONFIRMED, BookingStatus.CHECKED_IN)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, index=True)
    email = Column(String, unique=True, index=True)
    password = Column(String)
    full_name = Column(String, nullable=True)
    is_admin = Column(Boolean, default=False)

    bookings = relationship("CabinBooking", back_populates="patient")


class Cabin(Base):
    __tablename__ = "cabins"
    __table_args__ = (
        CheckConstraint("capacity > 0", name="ck_cabins_capacity_positive"),
        CheckConstraint("price_per_night_cents >= 0", name="ck_cabins_price_non_negative"),
    )

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, unique=True, index=True)
    description = Column(String, nullable=True)
    cabin_type = Column(String, default="GENERAL", index=True)
    room_number = Column(String, nullable=True)
    floor = Column(String, nullable=True)
    wing = Column(String, nullable=True)
    capacity = Column(Integer, nullable=False, default=1)
    price_per_night_cents = Column(Integer, nullable=False, default=0)
    amenities = Column(JSON, default=list)
    is_active = Column(Boolean, default=True, index=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    bookings = relationship("CabinBooking", back_populates="cabin")
    availability_periods = relationship(
        "CabinAvailabilityPeriod",
        back_populates="cabin",
        cascade="all, delete-orphan",
    )


class CabinAvailabilityPeriod(Base):
    """Admin-declared window during which a cabin may be booked."""

    __tablename__ = "cabin_availability_periods"
    __table_args__ = (
        CheckConstraint("start_date < end_date", name="ck_availability_period_range"),
    )

    id = Column(Integer, primary_key=True, index=True)
    cabin_id = Column(Integer, ForeignKey("cabins.id", ondelete="CASCADE"), index=True, nullable=False)
    start_date = Column(Date, nullable=False)
    end_date = Column(Date, nullable=False)
    is_active = Column(Boolean, default=True)
    reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow)

    cabin = relationship("Cabin", back_populates="availability_periods")


class CabinBooking(Base):
    """A patient's reservation of a cabin for [check_in_date, check_out_date)."""

    __tablename__ = "cabin_bookings"
    __table_args__ = (
        CheckConstraint("check_in_date < check_out_date", name="ck_cabin_booking_range"),
        CheckConstraint("number_of_guests >= 1", name="ck_cabin_booking_guests"),
    )

    id = Column(Integer, primary_key=True, index=True)
    booking_number = Column(String(20), unique=True, index=True, nullable=False)
    cabin_id = Column(Integer, ForeignKey("cabins.id"), index=True, nullable=False)
    patient_id = Column(Integer, ForeignKey("users.id"), index=True, nullable=False)

    check_in_date = Column(Date, nullable=False)
    check_out_date = Column(Date, nullable=False)
    number_of_nights = Column(Integer, nullable=False)
    number_of_guests = Column(Integer, nullable=False, default=1)

    guest_name = Column(String, nullable=False)
    guest_phone = Column(String, nullable=True)
    guest_email = Column(String, nullable=True)
    special_requests = Column(Text, nullable=True)
    payment_method = Column(String, nullable=True)

    total_amount_cents = Column(Integer, nullable=False, default=0)
    paid_amount_cents = Column(Integer, nullable=False, default=0)

    status = Column(Enum(BookingStatus), default=BookingStatus.PENDING, nullable=False, index=True)
    payment_status = Column(Enum(PaymentStatus), default=PaymentStatus.PENDING, nullable=False)
    notes = Column(Text, nullable=True)

    confirmed_at = Column(DateTime(timezone=True), nullable=True)
    checked_in_at = Column(DateTime(timezone=True), nullable=True)
    checked_out_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    cabin = relationship("Cabin", back_populates="bookings")
    patient = relationship("User", back_populates="bookings")
