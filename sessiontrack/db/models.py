from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    Date,
    DateTime,
    Enum,
    ForeignKey,
    Integer,
    Numeric,
    String,
    Text,
    Time,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from sessiontrack.db import Base, utcnow
from sessiontrack.status import (
    INVITATION_STATUSES,
    PARTICIPANT_STATUSES,
    PAYMENT_STATUSES,
    PROJECT_STATUSES,
    RECURRENCE_PATTERNS,
    SESSION_STATUSES,
    USER_TYPES,
)


class TimestampMixin:
    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)


class User(TimestampMixin, Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String, unique=True, index=True, nullable=False)
    password_hash = Column(String, nullable=False)
    user_type = Column(Enum(*USER_TYPES, name="user_type"), nullable=False)
    first_name = Column(String, nullable=False)
    last_name = Column(String, nullable=False)
    bio = Column(Text)
    location = Column(String)
    hourly_rate = Column(Numeric(10, 2))
    profile_image_url = Column(String)
    twofa_secret = Column(String)

    musician_profile = relationship(
        "MusicianProfile", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )
    created_projects = relationship("Project", back_populates="creator", cascade="all, delete-orphan")
    availability = relationship("Availability", back_populates="user", cascade="all, delete-orphan")
    tokens = relationship("AuthToken", back_populates="user", cascade="all, delete-orphan")
    notifications = relationship("Notification", back_populates="user", cascade="all, delete-orphan")

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"


class MusicianProfile(TimestampMixin, Base):
    __tablename__ = "musician_profiles"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False)
    years_experience = Column(Integer, default=0)
    studio_experience = Column(Boolean, default=False)
    remote_recording_capability = Column(Boolean, default=False)
    portfolio_url = Column(String)

    user = relationship("User", back_populates="musician_profile")
    instruments = relationship("MusicianInstrument", cascade="all, delete-orphan")
    genres = relationship("MusicianGenre", cascade="all, delete-orphan")


class Instrument(TimestampMixin, Base):
    __tablename__ = "instruments"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)
    category = Column(String, nullable=False)


class MusicianInstrument(TimestampMixin, Base):
    __tablename__ = "musician_instruments"
    __table_args__ = (
        UniqueConstraint("musician_profile_id", "instrument_id"),
        CheckConstraint("proficiency_level BETWEEN 1 AND 5", name="ck_proficiency_level"),
    )

    id = Column(Integer, primary_key=True)
    musician_profile_id = Column(Integer, ForeignKey("musician_profiles.id", ondelete="CASCADE"), nullable=False)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False)
    proficiency_level = Column(Integer, default=1)

    instrument = relationship("Instrument")


class Genre(TimestampMixin, Base):
    __tablename__ = "genres"

    id = Column(Integer, primary_key=True)
    name = Column(String, unique=True, nullable=False)


class MusicianGenre(TimestampMixin, Base):
    __tablename__ = "musician_genres"
    __table_args__ = (UniqueConstraint("musician_profile_id", "genre_id"),)

    id = Column(Integer, primary_key=True)
    musician_profile_id = Column(Integer, ForeignKey("musician_profiles.id", ondelete="CASCADE"), nullable=False)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), nullable=False)

    genre = relationship("Genre")


class Project(TimestampMixin, Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False)
    creator_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(*PROJECT_STATUSES, name="project_status"), nullable=False, default="draft")
    start_date = Column(Date)
    end_date = Column(Date)
    budget = Column(Numeric(10, 2))

    creator = relationship("User", back_populates="created_projects")
    genres = relationship("ProjectGenre", cascade="all, delete-orphan")
    instruments = relationship("ProjectInstrument", cascade="all, delete-orphan")
    invitations = relationship("ProjectInvitation", back_populates="project", cascade="all, delete-orphan")
    sessions = relationship(
        "RecordingSession",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="RecordingSession.start_time",
    )


class ProjectGenre(TimestampMixin, Base):
    __tablename__ = "project_genres"
    __table_args__ = (UniqueConstraint("project_id", "genre_id"),)

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    genre_id = Column(Integer, ForeignKey("genres.id", ondelete="CASCADE"), nullable=False)

    genre = relationship("Genre")


class ProjectInstrument(TimestampMixin, Base):
    __tablename__ = "project_instruments"
    __table_args__ = (UniqueConstraint("project_id", "instrument_id"),)

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False)
    requirements = Column(Text)
    filled = Column(Boolean, default=False, nullable=False)

    instrument = relationship("Instrument")


class ProjectInvitation(TimestampMixin, Base):
    __tablename__ = "project_invitations"
    __table_args__ = (UniqueConstraint("project_id", "musician_id", "instrument_id"),)

    id = Column(Integer, primary_key=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    musician_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(*INVITATION_STATUSES, name="invitation_status"), nullable=False, default="pending")
    message = Column(Text)
    rate = Column(Numeric(10, 2))

    project = relationship("Project", back_populates="invitations")
    musician = relationship("User")
    instrument = relationship("Instrument")


class RecordingSession(TimestampMixin, Base):
    """A scheduled recording event.  Stored in the ``sessions`` table."""

    __tablename__ = "sessions"

    id = Column(Integer, primary_key=True, index=True)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text)
    start_time = Column(DateTime, nullable=False)
    end_time = Column(DateTime, nullable=False)
    location = Column(String)
    status = Column(Enum(*SESSION_STATUSES, name="session_status"), nullable=False, default="scheduled")
    notes = Column(Text)

    project = relationship("Project", back_populates="sessions")
    participants = relationship(
        "SessionMusician", back_populates="session", cascade="all, delete-orphan", order_by="SessionMusician.id"
    )


class SessionMusician(TimestampMixin, Base):
    __tablename__ = "session_musicians"
    __table_args__ = (UniqueConstraint("session_id", "musician_id", "instrument_id"),)

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="CASCADE"), nullable=False)
    musician_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    instrument_id = Column(Integer, ForeignKey("instruments.id", ondelete="CASCADE"), nullable=False)
    status = Column(Enum(*PARTICIPANT_STATUSES, name="participant_status"), nullable=False, default="invited")
    rate = Column(Numeric(10, 2))
    notes = Column(Text)

    session = relationship("RecordingSession", back_populates="participants")
    musician = relationship("User")
    instrument = relationship("Instrument")


class Payment(TimestampMixin, Base):
    __tablename__ = "payments"

    id = Column(Integer, primary_key=True)
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"))
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"))
    payer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    payee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    amount = Column(Numeric(10, 2), nullable=False)
    status = Column(Enum(*PAYMENT_STATUSES, name="payment_status"), nullable=False, default="pending")
    payment_method = Column(String)
    transaction_id = Column(String)
    notes = Column(Text)

    payer = relationship("User", foreign_keys=[payer_id])
    payee = relationship("User", foreign_keys=[payee_id])


class Message(TimestampMixin, Base):
    __tablename__ = "messages"

    id = Column(Integer, primary_key=True)
    sender_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"))
    session_id = Column(Integer, ForeignKey("sessions.id", ondelete="SET NULL"))

    sender = relationship("User", foreign_keys=[sender_id])
    recipient = relationship("User", foreign_keys=[recipient_id])


class Review(TimestampMixin, Base):
    __tablename__ = "reviews"
    __table_args__ = (
        UniqueConstraint("reviewer_id", "reviewee_id", "project_id"),
        CheckConstraint("rating BETWEEN 1 AND 5", name="ck_review_rating"),
    )

    id = Column(Integer, primary_key=True)
    reviewer_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    reviewee_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    project_id = Column(Integer, ForeignKey("projects.id", ondelete="SET NULL"))
    rating = Column(Integer, nullable=False)
    content = Column(Text)

    reviewer = relationship("User", foreign_keys=[reviewer_id])


class Availability(TimestampMixin, Base):
    __tablename__ = "availability"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    date = Column(Date, nullable=False)
    start_time = Column(Time, nullable=False)
    end_time = Column(Time, nullable=False)
    recurring = Column(Boolean, default=False, nullable=False)
    recurrence_pattern = Column(Enum(*RECURRENCE_PATTERNS, name="recurrence_pattern"))
    recurrence_end_date = Column(Date)

    user = relationship("User", back_populates="availability")


class AuthToken(Base):
    __tablename__ = "auth_tokens"

    id = Column(Integer, primary_key=True)
    token = Column(String, unique=True, index=True, nullable=False)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="tokens")


class Notification(Base):
    __tablename__ = "notifications"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    kind = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    user = relationship("User", back_populates="notifications")


class ActivityLog(Base):
    __tablename__ = "activity_logs"

    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"))
    action = Column(String, nullable=False)
    # ``metadata`` is reserved on declarative classes
    details = Column("metadata", Text, nullable=False, default="{}")
    created_at = Column(DateTime, nullable=False, default=utcnow)
