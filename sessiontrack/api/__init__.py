"""
sessiontrack.api
================

FastAPI application exposing the SessionTrack REST API under ``/api`` and
the real-time channel at ``/ws``.  Route handlers are plain ``def``
functions; the framework runs them in its thread pool and each request
gets its own ORM session through :func:`sessiontrack.db.get_db`.

Error responses always carry a ``detail`` field:

* ``HTTPException``          -> its status code
* request validation         -> 400 ``Validation error`` with ``errors``
* illegal status transition  -> 409
* integrity violation        -> 409 ``Conflict with existing data``
* database unreachable       -> 503 ``Database unavailable``
* anything else              -> 500 with an ``error_id`` to quote in reports
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError, OperationalError

from sessiontrack import __version__
from sessiontrack.config import CLIENT_URL, HOST, PORT, configure_logging
from sessiontrack.db import init_db
from sessiontrack.realtime import websocket_endpoint
from sessiontrack.status import InvalidTransition
from sessiontrack.api import (
    auth,
    availability,
    catalog,
    invitations,
    messages,
    notifications,
    payments,
    projects,
    reviews,
    sessions,
    stats,
    users,
)

logger = logging.getLogger(__name__)

ROUTERS = (
    auth.router,
    users.router,
    catalog.router,
    availability.router,
    projects.router,
    invitations.router,
    sessions.router,
    payments.router,
    messages.router,
    reviews.router,
    stats.router,
    notifications.router,
)


# Error handlers ---------------------------------------------------------

async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.info("Validation error on %s %s: %s", request.method, request.url.path, exc.errors())
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={'detail': 'Validation error', 'errors': jsonable_encoder(exc.errors())},
    )


async def invalid_transition_handler(request: Request, exc: InvalidTransition) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={'detail': str(exc)})


async def integrity_error_handler(request: Request, exc: IntegrityError) -> JSONResponse:
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={'detail': 'Conflict with existing data'})


async def operational_error_handler(request: Request, exc: OperationalError) -> JSONResponse:
    logger.error("Database error on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, content={'detail': 'Database unavailable'})


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    error_id = uuid.uuid4().hex[:12]
    logger.error(
        "Unhandled exception [%s] in %s %s: %s",
        error_id,
        request.method,
        request.url.path,
        exc,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={'detail': 'Internal server error', 'error_id': error_id},
    )


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(RequestValidationError, validation_error_handler)
    app.add_exception_handler(InvalidTransition, invalid_transition_handler)
    app.add_exception_handler(IntegrityError, integrity_error_handler)
    app.add_exception_handler(OperationalError, operational_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)


# Application ------------------------------------------------------------

@asynccontextmanager
async def lifespan(_app: FastAPI):
    init_db()
    logger.info("SessionTrack API %s started", __version__)
    yield
    logger.info("SessionTrack API shutting down")


def create_app() -> FastAPI:
    app = FastAPI(title="SessionTrack API", version=__version__, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[CLIENT_URL],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    setup_exception_handlers(app)
    for router in ROUTERS:
        app.include_router(router, prefix="/api")

    @app.get("/health")
    def health():
        return {"status": "ok"}

    app.add_api_websocket_route("/ws", websocket_endpoint)
    return app


app = create_app()


def run_server(host: str = HOST, port: int = PORT, reload: bool = False) -> None:
    import uvicorn

    configure_logging()
    logger.info("SessionTrack server running on http://%s:%s (Ctrl-C to stop)", host, port)
    if reload:
        uvicorn.run("sessiontrack.api:app", host=host, port=port, reload=True)
    else:
        uvicorn.run(app, host=host, port=port)
