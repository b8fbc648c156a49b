# hospital_cabins/routes/bookings.py
from datetime import date
from typing import List, Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from hospital_cabins import models, database, schemas
from hospital_cabins.clock import Clock
from hospital_cabins.dependencies import get_clock, get_current_user, raise_for_outcome, verify_admin_user
from hospital_cabins.services import bookings as booking_service
from hospital_cabins.services import status as status_service

router = APIRouter(
    prefix="/bookings",
    tags=["Bookings"]
)

# ✅ Book a Cabin
@router.post("/", response_model=schemas.CabinBookingResponse, status_code=status.HTTP_201_CREATED)
def create_booking(
    booking_data: schemas.CabinBookingCreate,
    db: Session = Depends(database.get_db),
    current_user: models.User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
):
    outcome = booking_service.create_booking(db, booking_data, current_user.id, clock)
    return raise_for_outcome(outcome)

# ✅ List User Bookings (newest first)
@router.get("/my-bookings", response_model=List[schemas.CabinBookingResponse])
def list_user_bookings(db: Session = Depends(database.get_db), current_user: models.User = Depends(get_current_user)):
    return booking_service.list_patient_bookings(db, current_user.id)

# ✅ Admin - List All Bookings
@router.get("/admin/all-bookings", response_model=List[schemas.CabinBookingResponse],
            dependencies=[Depends(verify_admin_user)])
def list_all_bookings(
    status: Optional[models.BookingStatus] = None,
    cabin_id: Optional[int] = None,
    date_from: Optional[date] = None,
    date_to: Optional[date] = None,
    db: Session = Depends(database.get_db)
):
    filters = booking_service.BookingFilters(
        status=status, cabin_id=cabin_id, date_from=date_from, date_to=date_to
    )
    return booking_service.list_all_bookings(db, filters)

# ✅ Admin - Booking Statistics
@router.get("/admin/stats", response_model=schemas.BookingStatsResponse, dependencies=[Depends(verify_admin_user)])
def get_booking_stats(db: Session = Depends(database.get_db)):
    return schemas.BookingStatsResponse(**booking_service.booking_stats(db))

# ✅ Admin - Move a Booking Through its Lifecycle
@router.patch("/admin/{booking_id}/status", response_model=schemas.CabinBookingResponse)
def update_booking_status(
    booking_id: int,
    payload: schemas.BookingStatusUpdate,
    db: Session = Depends(database.get_db),
    admin: models.User = Depends(verify_admin_user),
    clock: Clock = Depends(get_clock)
):
    outcome = status_service.update_booking_status(db, booking_id, payload.status, admin, clock, notes=payload.notes)
    return raise_for_outcome(outcome)

@router.patch("/admin/{booking_id}/notes", response_model=schemas.CabinBookingResponse)
def update_booking_notes(
    booking_id: int,
    payload: schemas.BookingNotesUpdate,
    db: Session = Depends(database.get_db),
    admin: models.User = Depends(verify_admin_user)
):
    return raise_for_outcome(status_service.update_booking_notes(db, booking_id, payload.notes, admin))

@router.patch("/admin/{booking_id}/payment", response_model=schemas.CabinBookingResponse)
def update_payment_status(
    booking_id: int,
    payload: schemas.PaymentStatusUpdate,
    db: Session = Depends(database.get_db),
    admin: models.User = Depends(verify_admin_user),
    clock: Clock = Depends(get_clock)
):
    outcome = status_service.update_payment_status(
        db, booking_id, payload.payment_status, admin, clock, paid_amount=payload.paid_amount
    )
    return raise_for_outcome(outcome)

# ✅ Booking Details (owner or admin)
@router.get("/{booking_id}", response_model=schemas.CabinBookingResponse)
def get_booking(
    booking_id: int,
    db: Session = Depends(database.get_db),
    current_user: models.User = Depends(get_current_user)
):
    return raise_for_outcome(booking_service.get_booking(db, booking_id, current_user))

# ✅ Cancel Booking (owner or admin)
@router.post("/{booking_id}/cancel", response_model=schemas.CabinBookingResponse)
def cancel_booking(
    booking_id: int,
    payload: Optional[schemas.BookingCancelRequest] = None,
    db: Session = Depends(database.get_db),
    current_user: models.User = Depends(get_current_user),
    clock: Clock = Depends(get_clock)
):
    reason = payload.reason if payload else ""
    outcome = status_service.cancel_booking(db, booking_id, current_user, clock, reason=reason)
    return raise_for_outcome(outcome)
