import datetime as dt
import logging
from decimal import Decimal

from fastapi import HTTPException, status

logger = logging.getLogger(__name__)


def clean_text(value: str | None) -> str | None:
    """Return ``value`` stripped, or ``None`` when it is blank."""
    value = (value or '').strip()
    return value or None


def to_naive_utc(value: dt.datetime | None) -> dt.datetime | None:
    """Convert an aware datetime to naive UTC; naive values are assumed UTC."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(dt.timezone.utc).replace(tzinfo=None)


def iso(value) -> str | None:
    if value is None:
        return None
    if isinstance(value, dt.datetime) and value.tzinfo is None:
        return value.isoformat() + 'Z'
    return value.isoformat()


def money(value: Decimal | None) -> float | None:
    return float(value) if value is not None else None


def not_found(name: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"{name} not found")


def get_or_404(db, model, obj_id: int, name: str | None = None):
    obj = db.get(model, obj_id)
    if obj is None:
        raise not_found(name or model.__name__)
    return obj


def forbidden(detail: str = 'Forbidden') -> HTTPException:
    return HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=detail)


def bad_request(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def conflict(detail: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=detail)
