import os

import pytest

# The database must be chosen before sessiontrack is imported: the engine
# is created at import time.
pg = None
if os.environ.get("SESSIONTRACK_TEST_POSTGRES") == "1":
    from testcontainers.postgres import PostgresContainer

    pg = PostgresContainer("postgres:15")
    pg.start()
    os.environ["DATABASE_URL"] = pg.get_connection_url()
else:
    os.environ["DATABASE_URL"] = "sqlite://"

from sessiontrack.db import drop_db, init_db  # noqa: E402


@pytest.fixture(scope="session", autouse=True)
def _stop_container():
    yield
    if pg is not None:
        pg.stop()


@pytest.fixture(autouse=True)
def reset_db():
    drop_db()
    init_db()
    yield
