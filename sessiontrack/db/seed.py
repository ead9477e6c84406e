"""Default instrument and genre catalog."""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from sessiontrack.db import safe_commit
from sessiontrack.db import models

logger = logging.getLogger(__name__)

DEFAULT_INSTRUMENTS = {
    'Strings': ['Acoustic Guitar', 'Electric Guitar', 'Bass Guitar', 'Upright Bass', 'Violin', 'Cello'],
    'Keys': ['Piano', 'Organ', 'Synthesizer'],
    'Percussion': ['Drums', 'Percussion'],
    'Wind': ['Saxophone', 'Trumpet', 'Trombone', 'Flute', 'Clarinet'],
    'Voice': ['Lead Vocals', 'Backing Vocals'],
}

DEFAULT_GENRES = [
    'Rock', 'Pop', 'Jazz', 'Blues', 'Funk', 'Soul', 'R&B', 'Hip Hop',
    'Electronic', 'Country', 'Folk', 'Classical', 'Metal', 'Reggae', 'Latin',
]


def seed_catalog(db: Session) -> tuple[int, int]:
    """Insert the default catalog entries that are missing.

    Returns the number of instruments and genres added.  Running it twice
    adds nothing the second time.
    """
    known = {name.lower() for (name,) in db.query(func.lower(models.Instrument.name))}
    added_instruments = 0
    for category, names in DEFAULT_INSTRUMENTS.items():
        for name in names:
            if name.lower() not in known:
                db.add(models.Instrument(name=name, category=category))
                added_instruments += 1
    known = {name.lower() for (name,) in db.query(func.lower(models.Genre.name))}
    added_genres = 0
    for name in DEFAULT_GENRES:
        if name.lower() not in known:
            db.add(models.Genre(name=name))
            added_genres += 1
    safe_commit(db)
    logger.info("Catalog seeded: %d instruments, %d genres added", added_instruments, added_genres)
    return added_instruments, added_genres
