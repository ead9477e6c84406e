import datetime as dt
import json
import logging
import secrets

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from sessiontrack.config import TOKEN_TTL_SECONDS
from sessiontrack.db import get_db, safe_commit, utcnow
from sessiontrack.db import models

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

bearer_scheme = HTTPBearer(auto_error=False)


# Passwords --------------------------------------------------------------

def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


# Bearer tokens ----------------------------------------------------------

def generate_token(db: Session, user_id: int, ttl_seconds: int = TOKEN_TTL_SECONDS) -> str:
    token = secrets.token_hex(32)
    db.add(models.AuthToken(
        token=token,
        user_id=user_id,
        expires_at=utcnow() + dt.timedelta(seconds=ttl_seconds),
    ))
    safe_commit(db)
    return token


def get_user_by_token(db: Session, token: str | None) -> models.User | None:
    """Return the user owning ``token`` and extend its expiry.

    Expired tokens are purged on every lookup."""
    if not token:
        return None
    now = utcnow()
    db.query(models.AuthToken).filter(models.AuthToken.expires_at <= now).delete(synchronize_session=False)
    row = db.query(models.AuthToken).filter_by(token=token).first()
    if row is None:
        safe_commit(db)
        return None
    row.expires_at = now + dt.timedelta(seconds=TOKEN_TTL_SECONDS)
    safe_commit(db)
    return db.get(models.User, row.user_id)


def delete_token(db: Session, token: str) -> None:
    db.query(models.AuthToken).filter_by(token=token).delete(synchronize_session=False)
    safe_commit(db)


def log_event(db: Session, user_id: int | None, action: str, metadata: dict | None = None) -> None:
    db.add(models.ActivityLog(user_id=user_id, action=action, details=json.dumps(metadata or {})))
    safe_commit(db)


# Dependencies -----------------------------------------------------------

def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> models.User:
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Authentication required")
    user = get_user_by_token(db, credentials.credentials)
    if user is None:
        logger.warning("Rejected token on %s %s", request.method, request.url.path)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid or expired token")
    request.state.token = credentials.credentials
    return user


def require_user_type(*user_types: str):
    """Build a dependency that only lets the given user types through."""

    def dependency(user: models.User = Depends(get_current_user)) -> models.User:
        if user.user_type not in user_types:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Access denied: You do not have permission to perform this action",
            )
        return user

    return dependency
