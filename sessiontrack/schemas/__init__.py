"""Request bodies accepted by the REST API."""

import datetime as dt
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field

UserType = Literal["musician", "producer", "studio"]
ProjectStatus = Literal["draft", "open", "in_progress", "completed", "cancelled"]
InvitationStatus = Literal["pending", "accepted", "declined", "cancelled"]
SessionStatus = Literal["scheduled", "in_progress", "completed", "cancelled"]
PaymentStatus = Literal["pending", "completed", "failed", "refunded"]


# Auth -------------------------------------------------------------------

class RegisterRequest(BaseModel):
    email: EmailStr
    password: str
    user_type: UserType
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    bio: Optional[str] = None
    location: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    years_experience: int = Field(default=0, ge=0)
    studio_experience: bool = False
    remote_recording_capability: bool = False
    portfolio_url: Optional[str] = None


class LoginRequest(BaseModel):
    email: str
    password: str
    otp: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    current_password: str
    new_password: str


class TwoFAVerifyRequest(BaseModel):
    code: str


# Users ------------------------------------------------------------------

class UserUpdate(BaseModel):
    first_name: Optional[str] = Field(default=None, min_length=1)
    last_name: Optional[str] = Field(default=None, min_length=1)
    bio: Optional[str] = None
    location: Optional[str] = None
    hourly_rate: Optional[Decimal] = Field(default=None, ge=0)
    profile_image_url: Optional[str] = None
    years_experience: Optional[int] = Field(default=None, ge=0)
    studio_experience: Optional[bool] = None
    remote_recording_capability: Optional[bool] = None
    portfolio_url: Optional[str] = None


class InstrumentSkill(BaseModel):
    instrument_id: int
    proficiency_level: int = Field(default=1, ge=1, le=5)


class InstrumentSkillsUpdate(BaseModel):
    instruments: list[InstrumentSkill]


class GenresUpdate(BaseModel):
    genre_ids: list[int]


# Catalog ----------------------------------------------------------------

class InstrumentCreate(BaseModel):
    name: str = Field(min_length=1)
    category: str = Field(min_length=1)


class GenreCreate(BaseModel):
    name: str = Field(min_length=1)


# Availability -----------------------------------------------------------

class AvailabilityCreate(BaseModel):
    date: dt.date
    start_time: dt.time
    end_time: dt.time
    recurring: bool = False
    recurrence_pattern: Optional[Literal["daily", "weekly", "monthly"]] = None
    recurrence_end_date: Optional[dt.date] = None


class AvailabilityUpdate(BaseModel):
    date: Optional[dt.date] = None
    start_time: Optional[dt.time] = None
    end_time: Optional[dt.time] = None
    recurring: Optional[bool] = None
    recurrence_pattern: Optional[Literal["daily", "weekly", "monthly"]] = None
    recurrence_end_date: Optional[dt.date] = None


# Projects ---------------------------------------------------------------

class InstrumentNeed(BaseModel):
    instrument_id: int
    requirements: Optional[str] = None


class ProjectCreate(BaseModel):
    title: str = Field(min_length=1)
    description: str = Field(min_length=1)
    status: Literal["draft", "open"] = "draft"
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    genre_ids: list[int] = []
    instruments: list[InstrumentNeed] = []


class ProjectUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    budget: Optional[Decimal] = Field(default=None, ge=0)
    genre_ids: Optional[list[int]] = None


class ProjectStatusUpdate(BaseModel):
    status: ProjectStatus


class InvitationCreate(BaseModel):
    musician_id: int
    instrument_id: int
    message: Optional[str] = None
    rate: Optional[Decimal] = Field(default=None, ge=0)


class InvitationResponse(BaseModel):
    status: Literal["accepted", "declined"]


# Sessions ---------------------------------------------------------------

class ParticipantCreate(BaseModel):
    musician_id: int
    instrument_id: int
    rate: Optional[Decimal] = Field(default=None, ge=0)
    notes: Optional[str] = None


class SessionCreate(BaseModel):
    project_id: int
    title: str = Field(min_length=1)
    description: Optional[str] = None
    start_time: dt.datetime
    end_time: dt.datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    participants: list[ParticipantCreate] = []


class SessionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    start_time: Optional[dt.datetime] = None
    end_time: Optional[dt.datetime] = None
    location: Optional[str] = None
    notes: Optional[str] = None


class SessionStatusUpdate(BaseModel):
    status: SessionStatus


class ParticipantStatusUpdate(BaseModel):
    status: Literal["completed", "no_show"]


class ParticipantResponse(BaseModel):
    status: Literal["confirmed", "declined"]


# Payments ---------------------------------------------------------------

class PaymentCreate(BaseModel):
    payee_id: int
    amount: Decimal = Field(gt=0)
    session_id: Optional[int] = None
    project_id: Optional[int] = None
    payment_method: Optional[str] = None
    transaction_id: Optional[str] = None
    notes: Optional[str] = None


class PaymentStatusUpdate(BaseModel):
    status: PaymentStatus
    transaction_id: Optional[str] = None


# Messages ---------------------------------------------------------------

class MessageCreate(BaseModel):
    recipient_id: int
    content: str
    project_id: Optional[int] = None
    session_id: Optional[int] = None


# Reviews ----------------------------------------------------------------

class ReviewCreate(BaseModel):
    reviewee_id: int
    project_id: Optional[int] = None
    rating: int = Field(ge=1, le=5)
    content: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[int] = Field(default=None, ge=1, le=5)
    content: Optional[str] = None
