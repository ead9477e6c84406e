import logging

import pyotp
from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from sessiontrack.auth import (
    delete_token,
    generate_token,
    get_current_user,
    hash_password,
    log_event,
    verify_password,
)
from sessiontrack.config import PASSWORD_MIN_LENGTH
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import (
    ChangePasswordRequest,
    LoginRequest,
    RegisterRequest,
    TwoFAVerifyRequest,
)
from sessiontrack.utils import bad_request, clean_text, conflict
from sessiontrack.api.serializers import serialize_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

ISSUER_NAME = "SessionTrack"


def _check_password_strength(password: str) -> None:
    if len(password) < PASSWORD_MIN_LENGTH:
        raise bad_request(f"Password must be at least {PASSWORD_MIN_LENGTH} characters")


def _find_by_email(db: Session, email: str) -> models.User | None:
    return db.query(models.User).filter(func.lower(models.User.email) == email.lower()).first()


@router.post("/register", status_code=status.HTTP_201_CREATED)
def register(body: RegisterRequest, db: Session = Depends(get_db)):
    # Normalise to lower case so that accounts cannot differ only by case
    email = body.email.strip().lower()
    _check_password_strength(body.password)
    if _find_by_email(db, email):
        raise conflict("User with this email already exists")
    user = models.User(
        email=email,
        password_hash=hash_password(body.password),
        user_type=body.user_type,
        first_name=body.first_name.strip(),
        last_name=body.last_name.strip(),
        bio=clean_text(body.bio),
        location=clean_text(body.location),
        hourly_rate=body.hourly_rate,
    )
    if body.user_type == "musician":
        user.musician_profile = models.MusicianProfile(
            years_experience=body.years_experience,
            studio_experience=body.studio_experience,
            remote_recording_capability=body.remote_recording_capability,
            portfolio_url=clean_text(body.portfolio_url),
        )
    db.add(user)
    safe_commit(db)
    db.refresh(user)
    token = generate_token(db, user.id)
    log_event(db, user.id, 'register', {'email': user.email, 'user_type': user.user_type})
    logger.info("New user registered: %s (%s)", user.email, user.user_type)
    return {
        'message': 'User registered successfully',
        'user': serialize_user(user, with_profile=True),
        'token': token,
    }


@router.post("/login")
def login(body: LoginRequest, db: Session = Depends(get_db)):
    email = body.email.strip().lower()
    user = _find_by_email(db, email)
    if user is None or not verify_password(body.password, user.password_hash):
        logger.warning("Login failed for '%s'", email)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid email or password")
    if user.twofa_secret:
        if body.otp is None or not pyotp.TOTP(user.twofa_secret).verify(body.otp):
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="2FA code required")
    token = generate_token(db, user.id)
    log_event(db, user.id, 'login', {'email': user.email})
    logger.info("User logged in: %s", user.email)
    return {
        'message': 'Login successful',
        'user': serialize_user(user, with_profile=True),
        'token': token,
    }


@router.post("/logout")
def logout(request: Request, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    delete_token(db, request.state.token)
    log_event(db, user.id, 'logout')
    return {'message': 'Logged out'}


@router.get("/me")
def me(user: models.User = Depends(get_current_user)):
    return {'user': serialize_user(user, with_profile=True)}


@router.post("/change-password")
def change_password(
    body: ChangePasswordRequest,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not verify_password(body.current_password, user.password_hash):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Current password is incorrect")
    _check_password_strength(body.new_password)
    user.password_hash = hash_password(body.new_password)
    safe_commit(db)
    log_event(db, user.id, 'change_password')
    logger.info("Password changed for user: %s", user.email)
    return {'message': 'Password changed successfully'}


# 2FA endpoints ----------------------------------------------------------

@router.post("/2fa/setup")
def setup_2fa(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    secret = pyotp.random_base32()
    user.twofa_secret = secret
    safe_commit(db)
    log_event(db, user.id, '2fa_setup')
    return {
        'secret': secret,
        'provisioning_uri': pyotp.TOTP(secret).provisioning_uri(name=user.email, issuer_name=ISSUER_NAME),
    }


@router.post("/2fa/verify")
def verify_2fa(body: TwoFAVerifyRequest, user: models.User = Depends(get_current_user)):
    if not user.twofa_secret:
        raise bad_request("2FA is not set up")
    if not pyotp.TOTP(user.twofa_secret).verify(body.code):
        raise bad_request("Invalid code")
    return {'detail': '2FA enabled'}


@router.delete("/2fa")
def disable_2fa(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    user.twofa_secret = None
    safe_commit(db)
    log_event(db, user.id, '2fa_disabled')
    return {'detail': '2FA disabled'}
