from fastapi import APIRouter, Depends, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import GenreCreate, InstrumentCreate
from sessiontrack.utils import conflict
from sessiontrack.api.serializers import serialize_genre, serialize_instrument

router = APIRouter(tags=["catalog"])


@router.get("/instruments")
def list_instruments(category: str | None = None, db: Session = Depends(get_db)):
    query = db.query(models.Instrument)
    if category:
        query = query.filter(func.lower(models.Instrument.category) == category.lower())
    return [serialize_instrument(i) for i in query.order_by(models.Instrument.name).all()]


@router.post("/instruments", status_code=status.HTTP_201_CREATED)
def create_instrument(
    body: InstrumentCreate,
    _user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = body.name.strip()
    if db.query(models.Instrument).filter(func.lower(models.Instrument.name) == name.lower()).first():
        raise conflict("Instrument already exists")
    instrument = models.Instrument(name=name, category=body.category.strip())
    db.add(instrument)
    safe_commit(db)
    return serialize_instrument(instrument)


@router.get("/genres")
def list_genres(db: Session = Depends(get_db)):
    return [serialize_genre(g) for g in db.query(models.Genre).order_by(models.Genre.name).all()]


@router.post("/genres", status_code=status.HTTP_201_CREATED)
def create_genre(
    body: GenreCreate,
    _user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    name = body.name.strip()
    if db.query(models.Genre).filter(func.lower(models.Genre.name) == name.lower()).first():
        raise conflict("Genre already exists")
    genre = models.Genre(name=name)
    db.add(genre)
    safe_commit(db)
    return serialize_genre(genre)
