"""Runtime settings read from the environment.

A ``.env`` file at the project root is loaded first so that local
development does not need exported variables.  Every value can be
overridden by the real environment.
"""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(dotenv_path=Path(__file__).resolve().parent.parent.parent / ".env")

DATABASE_URL = os.environ.get("DATABASE_URL", "sqlite:///./sessiontrack.db")

# Bearer tokens expire after this many seconds of inactivity (default 24 h)
TOKEN_TTL_SECONDS = int(os.environ.get("TOKEN_TTL_SECONDS", 24 * 3600))

# Origin of the browser client, used for CORS
CLIENT_URL = os.environ.get("CLIENT_URL", "http://localhost:3000")

LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

HOST = os.environ.get("HOST", "0.0.0.0")
PORT = int(os.environ.get("PORT", 5000))

PASSWORD_MIN_LENGTH = int(os.environ.get("PASSWORD_MIN_LENGTH", 8))

# Size of the dashboard lists (upcoming sessions, recent payments)
UPCOMING_LIMIT = int(os.environ.get("UPCOMING_LIMIT", 5))
RECENT_LIMIT = int(os.environ.get("RECENT_LIMIT", 5))


def configure_logging(level: str | None = None) -> None:
    """Configure the root logger once for the whole process."""
    logging.basicConfig(
        level=getattr(logging, level or LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
