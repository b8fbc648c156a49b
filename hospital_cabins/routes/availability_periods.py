# hospital_cabins/routes/availability_periods.py
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from hospital_cabins import models, database, schemas, auth
from hospital_cabins.services.availability import dates_overlap

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Availability Periods"])


def find_overlapping_period(db: Session, cabin_id: int, start, end, exclude_id: int = None):
    query = db.query(models.CabinAvailabilityPeriod).filter(
        models.CabinAvailabilityPeriod.cabin_id == cabin_id,
        models.CabinAvailabilityPeriod.is_active.is_(True),
    )
    if exclude_id is not None:
        query = query.filter(models.CabinAvailabilityPeriod.id != exclude_id)
    for period in query.all():
        if dates_overlap(period.start_date, period.end_date, start, end):
            return period
    return None


def get_period_or_404(period_id: int, db: Session) -> models.CabinAvailabilityPeriod:
    period = db.query(models.CabinAvailabilityPeriod).filter(models.CabinAvailabilityPeriod.id == period_id).first()
    if not period:
        raise HTTPException(status_code=404, detail="Availability period not found")
    return period


# Public - Active periods of one cabin
@router.get("/cabins/{cabin_id}/availability-periods", response_model=List[schemas.AvailabilityPeriodResponse])
def list_cabin_periods(cabin_id: int, db: Session = Depends(database.get_db)):
    return (
        db.query(models.CabinAvailabilityPeriod)
        .filter(
            models.CabinAvailabilityPeriod.cabin_id == cabin_id,
            models.CabinAvailabilityPeriod.is_active.is_(True),
        )
        .order_by(models.CabinAvailabilityPeriod.start_date)
        .all()
    )

# Admin Only - Create a period
@router.post(
    "/cabins/{cabin_id}/availability-periods",
    response_model=schemas.AvailabilityPeriodResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(auth.verify_admin_user)],
)
def create_period(cabin_id: int, data: schemas.AvailabilityPeriodCreate, db: Session = Depends(database.get_db)):
    cabin = db.query(models.Cabin).filter(models.Cabin.id == cabin_id).first()
    if not cabin:
        raise HTTPException(status_code=404, detail="Cabin not found")

    if data.start_date >= data.end_date:
        raise HTTPException(status_code=400, detail="End date must be after start date")

    if find_overlapping_period(db, cabin_id, data.start_date, data.end_date):
        raise HTTPException(
            status_code=400,
            detail="This date range overlaps with an existing availability period"
        )

    period = models.CabinAvailabilityPeriod(
        cabin_id=cabin_id,
        start_date=data.start_date,
        end_date=data.end_date,
        reason=data.reason or None,
    )
    db.add(period)
    db.commit()
    db.refresh(period)
    logger.info("Availability period %s..%s added to cabin %s", period.start_date, period.end_date, cabin_id)
    return period

# Admin Only - All periods with their cabin names
@router.get(
    "/availability-periods",
    response_model=List[schemas.AvailabilityPeriodWithCabin],
    dependencies=[Depends(auth.verify_admin_user)],
)
def list_all_periods(db: Session = Depends(database.get_db)):
    rows = (
        db.query(models.CabinAvailabilityPeriod, models.Cabin.name)
        .join(models.Cabin, models.CabinAvailabilityPeriod.cabin_id == models.Cabin.id)
        .order_by(models.CabinAvailabilityPeriod.start_date)
        .all()
    )
    return [
        schemas.AvailabilityPeriodWithCabin(
            **schemas.AvailabilityPeriodResponse.model_validate(period).model_dump(),
            cabin_name=cabin_name,
        )
        for period, cabin_name in rows
    ]

# Admin Only - Update a period
@router.put(
    "/availability-periods/{period_id}",
    response_model=schemas.AvailabilityPeriodResponse,
    dependencies=[Depends(auth.verify_admin_user)],
)
def update_period(period_id: int, data: schemas.AvailabilityPeriodUpdate, db: Session = Depends(database.get_db)):
    period = get_period_or_404(period_id, db)

    start = data.start_date or period.start_date
    end = data.end_date or period.end_date
    if start >= end:
        raise HTTPException(status_code=400, detail="End date must be after start date")

    is_active = period.is_active if data.is_active is None else data.is_active
    if is_active and find_overlapping_period(db, period.cabin_id, start, end, exclude_id=period.id):
        raise HTTPException(
            status_code=400,
            detail="This date range overlaps with an existing availability period"
        )

    period.start_date = start
    period.end_date = end
    period.is_active = is_active
    if data.reason is not None:
        period.reason = data.reason

    db.commit()
    db.refresh(period)
    return period

# Admin Only - Delete a period
@router.delete("/availability-periods/{period_id}", dependencies=[Depends(auth.verify_admin_user)])
def delete_period(period_id: int, db: Session = Depends(database.get_db)):
    period = get_period_or_404(period_id, db)
    db.delete(period)
    db.commit()
    return {"message": "Availability period deleted successfully"}
