from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import AvailabilityCreate, AvailabilityUpdate
from sessiontrack.utils import bad_request, not_found
from sessiontrack.api.serializers import serialize_availability

router = APIRouter(prefix="/availability", tags=["availability"])

REQUIRED_SLOT_FIELDS = ('date', 'start_time', 'end_time', 'recurring')


def _validate(slot: models.Availability) -> None:
    if slot.end_time <= slot.start_time:
        raise bad_request("End time must be after start time")
    if slot.recurring and not slot.recurrence_pattern:
        raise bad_request("Recurring availability requires a recurrence pattern")
    if not slot.recurring:
        slot.recurrence_pattern = None
        slot.recurrence_end_date = None
    if slot.recurrence_end_date is not None and slot.recurrence_end_date < slot.date:
        raise bad_request("Recurrence end date cannot precede the start date")


def _own_slot(db: Session, user: models.User, slot_id: int) -> models.Availability:
    slot = db.query(models.Availability).filter_by(id=slot_id, user_id=user.id).first()
    if slot is None:
        raise not_found('Availability')
    return slot


@router.get("")
def list_availability(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        db.query(models.Availability)
        .filter_by(user_id=user.id)
        .order_by(models.Availability.date, models.Availability.start_time)
        .all()
    )
    return [serialize_availability(a) for a in rows]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_availability(
    body: AvailabilityCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    slot = models.Availability(user_id=user.id, **body.model_dump())
    _validate(slot)
    db.add(slot)
    safe_commit(db)
    return serialize_availability(slot)


@router.put("/{slot_id}")
def update_availability(
    slot_id: int,
    body: AvailabilityUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    slot = _own_slot(db, user, slot_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_SLOT_FIELDS:
            continue
        setattr(slot, field, value)
    _validate(slot)
    safe_commit(db)
    return serialize_availability(slot)


@router.delete("/{slot_id}")
def delete_availability(slot_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    slot = _own_slot(db, user, slot_id)
    db.delete(slot)
    safe_commit(db)
    return {'success': True}
