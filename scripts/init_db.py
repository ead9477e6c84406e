"""Create the SessionTrack schema in the database named by DATABASE_URL.

Deployments that track schema versions should run ``alembic upgrade head``
instead.
"""
from sessiontrack.config import configure_logging
from sessiontrack.db import init_db


def main():
    configure_logging()
    init_db()

if __name__ == "__main__":
    main()
