# hospital_cabins/schemas.py
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field, computed_field

from hospital_cabins.models import BookingStatus, PaymentStatus
from hospital_cabins.money import from_cents


class UserCreate(BaseModel):
    username: str
    email: EmailStr
    password: str
    full_name: Optional[str] = None

class UserLogin(BaseModel):
    email: EmailStr
    password: str


# ✅ Cabins
class CabinCreate(BaseModel):
    name: str
    description: Optional[str] = None
    cabin_type: str = "GENERAL"
    room_number: Optional[str] = None
    floor: Optional[str] = None
    wing: Optional[str] = None
    capacity: int = Field(gt=0)
    price_per_night: Decimal = Field(ge=0, decimal_places=2)
    amenities: List[str] = []
    is_active: bool = True

class CabinResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    cabin_type: Optional[str] = None
    room_number: Optional[str] = None
    floor: Optional[str] = None
    wing: Optional[str] = None
    capacity: int
    price_per_night_cents: int
    amenities: List[str] = []
    is_active: bool

    @computed_field
    @property
    def price_per_night(self) -> Decimal:
        return from_cents(self.price_per_night_cents)

class BlockingBooking(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    check_in_date: date
    check_out_date: date
    status: BookingStatus

class CabinDetail(CabinResponse):
    bookings: List[BlockingBooking] = []


# ✅ Availability periods
class AvailabilityPeriodCreate(BaseModel):
    start_date: date
    end_date: date
    reason: Optional[str] = None

class AvailabilityPeriodUpdate(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reason: Optional[str] = None
    is_active: Optional[bool] = None

class AvailabilityPeriodResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    cabin_id: int
    start_date: date
    end_date: date
    is_active: bool
    reason: Optional[str] = None

class AvailabilityPeriodWithCabin(AvailabilityPeriodResponse):
    cabin_name: Optional[str] = None

class AvailabilityResponse(BaseModel):
    cabin_id: int
    check_in_date: date
    check_out_date: date
    available: bool
    reason: Optional[str] = None

class DateRangeResponse(BaseModel):
    start_date: date
    end_date: date

class AvailableRangesResponse(BaseModel):
    has_restrictions: bool
    available_ranges: Optional[List[DateRangeResponse]] = None

class DisabledDatesResponse(AvailableRangesResponse):
    disabled_dates: List[date] = []

class DateAvailabilityResponse(BaseModel):
    date: date
    available: bool


# ✅ Bookings
class CabinBookingCreate(BaseModel):
    cabin_id: int
    check_in_date: date
    check_out_date: date
    number_of_guests: int = 1
    guest_name: str
    guest_phone: Optional[str] = None
    guest_email: Optional[EmailStr] = None
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None

class CabinBookingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    booking_number: str
    cabin_id: int
    patient_id: int
    check_in_date: date
    check_out_date: date
    number_of_nights: int
    number_of_guests: int
    guest_name: str
    guest_phone: Optional[str] = None
    guest_email: Optional[str] = None
    special_requests: Optional[str] = None
    payment_method: Optional[str] = None
    total_amount_cents: int
    paid_amount_cents: int
    status: BookingStatus
    payment_status: PaymentStatus
    notes: Optional[str] = None
    confirmed_at: Optional[datetime] = None
    checked_in_at: Optional[datetime] = None
    checked_out_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    paid_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    @computed_field
    @property
    def total_amount(self) -> Decimal:
        return from_cents(self.total_amount_cents)

    @computed_field
    @property
    def paid_amount(self) -> Decimal:
        return from_cents(self.paid_amount_cents)

class BookingStatusUpdate(BaseModel):
    status: BookingStatus
    notes: Optional[str] = None

class BookingCancelRequest(BaseModel):
    reason: str = ""

class BookingNotesUpdate(BaseModel):
    notes: str

class PaymentStatusUpdate(BaseModel):
    payment_status: PaymentStatus
    paid_amount: Optional[Decimal] = None

class BookingStatsResponse(BaseModel):
    total_bookings: int
    pending_bookings: int
    confirmed_bookings: int
    checked_in_bookings: int
    checked_out_bookings: int
    cancelled_bookings: int
    total_revenue_cents: int

    @computed_field
    @property
    def total_revenue(self) -> Decimal:
        return from_cents(self.total_revenue_cents)
