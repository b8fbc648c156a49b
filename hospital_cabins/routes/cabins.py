# hospital_cabins/routes/cabins.py
import logging
from datetime import date
from decimal import Decimal
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from hospital_cabins import models, database, schemas, auth
from hospital_cabins.clock import Clock
from hospital_cabins.config import settings
from hospital_cabins.dependencies import get_clock, raise_for_error
from hospital_cabins.errors import AvailabilityLookupError
from hospital_cabins.money import to_cents
from hospital_cabins.services import availability

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/cabins",
    tags=["Cabins"]
)


def cabin_filters(
    cabin_type: Optional[str] = None,
    min_price: Optional[Decimal] = None,
    max_price: Optional[Decimal] = None,
    capacity: Optional[int] = None,
    amenities: List[str] = Query(default=[]),
) -> availability.CabinFilters:
    return availability.CabinFilters(
        cabin_type=cabin_type,
        min_price_cents=to_cents(min_price) if min_price is not None else None,
        max_price_cents=to_cents(max_price) if max_price is not None else None,
        capacity=capacity,
        amenities=amenities,
    )


def get_cabin_or_404(cabin_id: int, db: Session) -> models.Cabin:
    cabin = db.query(models.Cabin).filter(models.Cabin.id == cabin_id).first()
    if not cabin:
        raise HTTPException(status_code=404, detail="Cabin not found")
    return cabin


def apply_cabin_fields(cabin: models.Cabin, data: schemas.CabinCreate):
    cabin.name = data.name
    cabin.description = data.description
    cabin.cabin_type = data.cabin_type
    cabin.room_number = data.room_number
    cabin.floor = data.floor
    cabin.wing = data.wing
    cabin.capacity = data.capacity
    cabin.price_per_night_cents = to_cents(data.price_per_night)
    cabin.amenities = list(data.amenities)
    cabin.is_active = data.is_active


# Admin Only - Create a Cabin
@router.post("/", response_model=schemas.CabinResponse, status_code=status.HTTP_201_CREATED,
             dependencies=[Depends(auth.verify_admin_user)])
def create_cabin(cabin: schemas.CabinCreate, db: Session = Depends(database.get_db)):
    existing_cabin = db.query(models.Cabin).filter(models.Cabin.name == cabin.name).first()
    if existing_cabin:
        raise HTTPException(status_code=400, detail="Cabin with this name already exists.")

    new_cabin = models.Cabin()
    apply_cabin_fields(new_cabin, cabin)
    db.add(new_cabin)
    db.commit()
    db.refresh(new_cabin)
    logger.info("Cabin %s created (%s)", new_cabin.id, new_cabin.name)
    return new_cabin

# Public - List Cabins
@router.get("/", response_model=List[schemas.CabinResponse])
def list_cabins(
    is_active: bool = True,
    filters: availability.CabinFilters = Depends(cabin_filters),
    db: Session = Depends(database.get_db)
):
    query = db.query(models.Cabin).filter(models.Cabin.is_active.is_(is_active))
    cabins = availability.filter_cabins(query, filters).order_by(models.Cabin.created_at.desc()).all()
    return [c for c in cabins if availability.has_amenities(c, filters.amenities)]

# Public - Cabins free for a stay
@router.get("/search", response_model=List[schemas.CabinResponse])
def search_cabins(
    check_in_date: date,
    check_out_date: date,
    filters: availability.CabinFilters = Depends(cabin_filters),
    db: Session = Depends(database.get_db)
):
    if check_in_date >= check_out_date:
        raise HTTPException(status_code=400, detail="Check-out date must be after check-in date")
    try:
        return availability.search_available_cabins(db, check_in_date, check_out_date, filters)
    except AvailabilityLookupError as exc:
        raise_for_error(exc.kind, exc.message)

# Public - Cabin Details with its occupied stays
@router.get("/{cabin_id}", response_model=schemas.CabinDetail)
def get_cabin(cabin_id: int, db: Session = Depends(database.get_db)):
    cabin = get_cabin_or_404(cabin_id, db)
    blocking = (
        db.query(models.CabinBooking)
        .filter(
            models.CabinBooking.cabin_id == cabin_id,
            models.CabinBooking.status.in_(models.BLOCKING_STATUSES),
        )
        .order_by(models.CabinBooking.check_in_date)
        .all()
    )
    detail = schemas.CabinDetail.model_validate(cabin)
    detail.bookings = [schemas.BlockingBooking.model_validate(b) for b in blocking]
    return detail

# Admin Only - Update a Cabin
@router.put("/{cabin_id}", response_model=schemas.CabinResponse, dependencies=[Depends(auth.verify_admin_user)])
def update_cabin(cabin_id: int, cabin: schemas.CabinCreate, db: Session = Depends(database.get_db)):
    cabin_to_update = get_cabin_or_404(cabin_id, db)

    clash = db.query(models.Cabin).filter(models.Cabin.name == cabin.name, models.Cabin.id != cabin_id).first()
    if clash:
        raise HTTPException(status_code=400, detail="Cabin with this name already exists.")

    apply_cabin_fields(cabin_to_update, cabin)
    db.commit()
    db.refresh(cabin_to_update)
    return cabin_to_update

# Admin Only - Delete a Cabin
@router.delete("/{cabin_id}", dependencies=[Depends(auth.verify_admin_user)])
def delete_cabin(cabin_id: int, db: Session = Depends(database.get_db)):
    cabin_to_delete = get_cabin_or_404(cabin_id, db)

    bookings = db.query(models.CabinBooking).filter(models.CabinBooking.cabin_id == cabin_id)
    if bookings.filter(models.CabinBooking.status.in_(models.BLOCKING_STATUSES)).count():
        raise HTTPException(status_code=400, detail="Cannot delete cabin with active bookings")

    # Past bookings keep referencing the cabin, so it is only deactivated
    if bookings.count():
        cabin_to_delete.is_active = False
        db.commit()
        logger.info("Cabin %s deactivated", cabin_id)
        return {"message": "Cabin has booking history and was deactivated", "deactivated": True}

    db.delete(cabin_to_delete)
    db.commit()
    logger.info("Cabin %s deleted", cabin_id)
    return {"message": "Cabin deleted successfully", "deactivated": False}


# ✅ Availability
@router.get("/{cabin_id}/availability", response_model=schemas.AvailabilityResponse)
def check_cabin_availability(
    cabin_id: int,
    check_in_date: date,
    check_out_date: date,
    db: Session = Depends(database.get_db)
):
    try:
        result = availability.check_availability(db, cabin_id, check_in_date, check_out_date)
    except AvailabilityLookupError as exc:
        raise_for_error(exc.kind, exc.message)

    return schemas.AvailabilityResponse(
        cabin_id=cabin_id,
        check_in_date=check_in_date,
        check_out_date=check_out_date,
        available=result.available,
        reason=result.reason,
    )

def _ranges_payload(date_ranges):
    if not date_ranges.has_restrictions:
        return None
    return [schemas.DateRangeResponse(start_date=r.start_date, end_date=r.end_date) for r in date_ranges.ranges]

@router.get("/{cabin_id}/available-ranges", response_model=schemas.AvailableRangesResponse)
def get_available_ranges(
    cabin_id: int,
    db: Session = Depends(database.get_db),
    clock: Clock = Depends(get_clock)
):
    get_cabin_or_404(cabin_id, db)
    try:
        date_ranges = availability.available_date_ranges(db, cabin_id, clock.today())
    except AvailabilityLookupError as exc:
        raise_for_error(exc.kind, exc.message)

    return schemas.AvailableRangesResponse(
        has_restrictions=date_ranges.has_restrictions,
        available_ranges=_ranges_payload(date_ranges),
    )

@router.get("/{cabin_id}/disabled-dates", response_model=schemas.DisabledDatesResponse)
def get_disabled_dates(
    cabin_id: int,
    db: Session = Depends(database.get_db),
    clock: Clock = Depends(get_clock)
):
    get_cabin_or_404(cabin_id, db)
    try:
        date_ranges, disabled = availability.disabled_dates(
            db, cabin_id, clock.today(), settings.DISABLED_DATES_HORIZON_DAYS
        )
    except AvailabilityLookupError as exc:
        raise_for_error(exc.kind, exc.message)

    return schemas.DisabledDatesResponse(
        has_restrictions=date_ranges.has_restrictions,
        available_ranges=_ranges_payload(date_ranges),
        disabled_dates=disabled,
    )

@router.get("/{cabin_id}/dates/{day}", response_model=schemas.DateAvailabilityResponse)
def check_date(
    cabin_id: int,
    day: date,
    db: Session = Depends(database.get_db),
    clock: Clock = Depends(get_clock)
):
    get_cabin_or_404(cabin_id, db)
    try:
        available = availability.is_date_available(db, cabin_id, day, clock.today())
    except AvailabilityLookupError as exc:
        raise_for_error(exc.kind, exc.message)
    return schemas.DateAvailabilityResponse(date=day, available=available)
