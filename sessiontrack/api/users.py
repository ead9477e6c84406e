import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user, log_event
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import GenresUpdate, InstrumentSkillsUpdate, UserType, UserUpdate
from sessiontrack.utils import bad_request, forbidden, get_or_404
from sessiontrack.api.serializers import (
    serialize_availability,
    serialize_review,
    serialize_user,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])

PROFILE_FIELDS = ('years_experience', 'studio_experience', 'remote_recording_capability', 'portfolio_url')
USER_FIELDS = ('first_name', 'last_name', 'bio', 'location', 'hourly_rate', 'profile_image_url')
REQUIRED_USER_FIELDS = ('first_name', 'last_name')


def _public_profile(db: Session, user: models.User) -> dict:
    data = serialize_user(user, with_profile=True)
    # Email addresses are only disclosed through /auth/me
    data.pop('email', None)
    avg, count = (
        db.query(func.avg(models.Review.rating), func.count(models.Review.id))
        .filter(models.Review.reviewee_id == user.id)
        .one()
    )
    data['average_rating'] = round(float(avg), 2) if avg is not None else None
    data['review_count'] = count
    return data


def _require_self(user: models.User, user_id: int) -> None:
    if user.id != user_id:
        raise forbidden("You can only modify your own profile")


def _musician_profile(user: models.User) -> models.MusicianProfile:
    if user.user_type != 'musician' or user.musician_profile is None:
        raise bad_request("Only musicians have instruments and genres")
    return user.musician_profile


@router.get("")
def search_users(
    user_type: Optional[UserType] = None,
    location: Optional[str] = None,
    q: Optional[str] = None,
    _user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.User)
    if user_type:
        query = query.filter(models.User.user_type == user_type)
    if location:
        query = query.filter(models.User.location.ilike(f"%{location}%"))
    if q:
        pattern = f"%{q}%"
        query = query.filter(or_(models.User.first_name.ilike(pattern), models.User.last_name.ilike(pattern)))
    users = query.order_by(models.User.last_name, models.User.first_name).all()
    return [_public_profile(db, u) for u in users]


@router.get("/musicians")
def list_musicians(
    instrument_id: Optional[int] = None,
    genre_id: Optional[int] = None,
    location: Optional[str] = None,
    _user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = (
        db.query(models.User)
        .join(models.MusicianProfile, models.MusicianProfile.user_id == models.User.id)
        .filter(models.User.user_type == 'musician')
    )
    if instrument_id is not None:
        query = query.join(
            models.MusicianInstrument,
            models.MusicianInstrument.musician_profile_id == models.MusicianProfile.id,
        ).filter(models.MusicianInstrument.instrument_id == instrument_id)
    if genre_id is not None:
        query = query.join(
            models.MusicianGenre,
            models.MusicianGenre.musician_profile_id == models.MusicianProfile.id,
        ).filter(models.MusicianGenre.genre_id == genre_id)
    if location:
        query = query.filter(models.User.location.ilike(f"%{location}%"))
    users = query.order_by(models.User.last_name, models.User.first_name).all()
    return [_public_profile(db, u) for u in users]


@router.get("/{user_id}")
def get_user(user_id: int, _user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    return _public_profile(db, get_or_404(db, models.User, user_id, 'User'))


@router.put("/{user_id}")
def update_user(
    user_id: int,
    body: UserUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_self(user, user_id)
    changes = body.model_dump(exclude_unset=True)
    for field in USER_FIELDS:
        if field not in changes:
            continue
        if changes[field] is None and field in REQUIRED_USER_FIELDS:
            continue
        setattr(user, field, changes[field])
    profile_changes = {k: v for k, v in changes.items() if k in PROFILE_FIELDS}
    if profile_changes:
        profile = _musician_profile(user)
        for field, value in profile_changes.items():
            setattr(profile, field, value)
    safe_commit(db)
    db.refresh(user)
    return {'user': serialize_user(user, with_profile=True)}


@router.delete("/{user_id}")
def delete_user(user_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Delete the current user's account and associated data."""
    _require_self(user, user_id)
    email = user.email
    db.delete(user)
    safe_commit(db)
    log_event(db, None, 'delete_account', {'email': email})
    logger.info("Account deleted: %s", email)
    return {'message': 'Account deleted'}


@router.put("/{user_id}/instruments")
def set_instruments(
    user_id: int,
    body: InstrumentSkillsUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_self(user, user_id)
    profile = _musician_profile(user)
    seen: set[int] = set()
    for skill in body.instruments:
        if skill.instrument_id in seen:
            raise bad_request("Duplicate instrument in list")
        seen.add(skill.instrument_id)
        get_or_404(db, models.Instrument, skill.instrument_id, 'Instrument')
    profile.instruments.clear()
    db.flush()
    for skill in body.instruments:
        profile.instruments.append(models.MusicianInstrument(
            instrument_id=skill.instrument_id,
            proficiency_level=skill.proficiency_level,
        ))
    safe_commit(db)
    db.refresh(user)
    return {'user': serialize_user(user, with_profile=True)}


@router.put("/{user_id}/genres")
def set_genres(
    user_id: int,
    body: GenresUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    _require_self(user, user_id)
    profile = _musician_profile(user)
    genre_ids = list(dict.fromkeys(body.genre_ids))
    for genre_id in genre_ids:
        get_or_404(db, models.Genre, genre_id, 'Genre')
    profile.genres.clear()
    db.flush()
    for genre_id in genre_ids:
        profile.genres.append(models.MusicianGenre(genre_id=genre_id))
    safe_commit(db)
    db.refresh(user)
    return {'user': serialize_user(user, with_profile=True)}


@router.get("/{user_id}/reviews")
def user_reviews(user_id: int, _user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_or_404(db, models.User, user_id, 'User')
    rows = (
        db.query(models.Review)
        .filter_by(reviewee_id=user_id)
        .order_by(models.Review.created_at.desc(), models.Review.id.desc())
        .all()
    )
    return [serialize_review(r) for r in rows]


@router.get("/{user_id}/availability")
def user_availability(user_id: int, _user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    get_or_404(db, models.User, user_id, 'User')
    rows = (
        db.query(models.Availability)
        .filter_by(user_id=user_id)
        .order_by(models.Availability.date, models.Availability.start_time)
        .all()
    )
    return [serialize_availability(a) for a in rows]
