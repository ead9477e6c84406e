"""Fill the instruments and genres tables with a default catalog."""
from sessiontrack.config import configure_logging
from sessiontrack.db import SessionLocal, init_db
from sessiontrack.db.seed import seed_catalog


def main():
    configure_logging()
    init_db()
    db = SessionLocal()
    try:
        instruments, genres = seed_catalog(db)
    finally:
        db.close()
    print(f"Added {instruments} instruments and {genres} genres")

if __name__ == "__main__":
    main()
