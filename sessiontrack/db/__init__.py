import datetime as dt
import logging

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import declarative_base, sessionmaker
from sqlalchemy.pool import StaticPool

from sessiontrack.config import DATABASE_URL

logger = logging.getLogger(__name__)

#############################
# Engine and session factory
#############################


def _engine_kwargs(url: str) -> dict:
    if not url.startswith("sqlite"):
        return {"pool_pre_ping": True}
    kwargs: dict = {"connect_args": {"check_same_thread": False}}
    # An in-memory database only exists inside a single connection
    if url in ("sqlite://", "sqlite:///:memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


engine = create_engine(DATABASE_URL, echo=False, future=True, **_engine_kwargs(DATABASE_URL))

if DATABASE_URL.startswith("sqlite"):

    @event.listens_for(engine, "connect")
    def _enable_sqlite_foreign_keys(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys = ON")
        cur.close()


SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

Base = declarative_base()


def utcnow() -> dt.datetime:
    """Naive UTC timestamp, the form every datetime column stores."""
    return dt.datetime.now(dt.timezone.utc).replace(tzinfo=None)


# Dependency -------------------------------------------------------------

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def safe_commit(db) -> None:
    """Commit the current transaction, rolling back on failure."""
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise


def init_db() -> None:
    """Create tables if they do not already exist.  This function is
    idempotent."""
    from sessiontrack.db import models  # noqa: F401  registers the tables

    Base.metadata.create_all(bind=engine)
    logger.info("Database schema ready (%s)", engine.url.render_as_string(hide_password=True))


def drop_db() -> None:
    from sessiontrack.db import models  # noqa: F401

    Base.metadata.drop_all(bind=engine)
