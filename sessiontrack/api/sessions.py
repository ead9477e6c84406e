import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user, require_user_type
from sessiontrack.config import UPCOMING_LIMIT
from sessiontrack.db import get_db, safe_commit, utcnow
from sessiontrack.db import models
from sessiontrack.schemas import (
    ParticipantCreate,
    ParticipantResponse,
    ParticipantStatusUpdate,
    SessionCreate,
    SessionStatus,
    SessionStatusUpdate,
    SessionUpdate,
)
from sessiontrack.status import check_participant_response, check_transition
from sessiontrack.utils import bad_request, conflict, forbidden, get_or_404, not_found, to_naive_utc
from sessiontrack.api.notifications import notify
from sessiontrack.api.projects import CLOSED_PROJECT_STATUSES, require_creator
from sessiontrack.api.serializers import serialize_participant, serialize_session

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/sessions", tags=["sessions"])

ACTIVE_SESSION_STATUSES = ('scheduled', 'in_progress')
REQUIRED_SESSION_FIELDS = ('title', 'start_time', 'end_time')


def _visible_sessions(db: Session, user: models.User):
    participating = select(models.SessionMusician.session_id).where(models.SessionMusician.musician_id == user.id)
    return (
        db.query(models.RecordingSession)
        .join(models.Project, models.Project.id == models.RecordingSession.project_id)
        .filter(or_(models.Project.creator_id == user.id, models.RecordingSession.id.in_(participating)))
    )


def get_session(db: Session, session_id: int) -> models.RecordingSession:
    return get_or_404(db, models.RecordingSession, session_id, 'Session')


def is_organizer(session: models.RecordingSession, user: models.User) -> bool:
    return session.project.creator_id == user.id


def require_organizer(session: models.RecordingSession, user: models.User) -> None:
    if not is_organizer(session, user):
        raise forbidden("Only the session organizer can do this")


def _check_times(session: models.RecordingSession) -> None:
    if session.end_time <= session.start_time:
        raise bad_request("End time must be after start time")


def _add_participant(
    db: Session,
    session: models.RecordingSession,
    organizer: models.User,
    body: ParticipantCreate,
) -> models.SessionMusician:
    if body.musician_id == organizer.id:
        raise bad_request("You cannot invite yourself")
    musician = get_or_404(db, models.User, body.musician_id, 'Musician')
    if musician.user_type != 'musician':
        raise bad_request("Only musicians can be invited")
    get_or_404(db, models.Instrument, body.instrument_id, 'Instrument')
    if any(
        p.musician_id == body.musician_id and p.instrument_id == body.instrument_id
        for p in session.participants
    ):
        raise conflict("Musician already invited to this session for this instrument")
    participant = models.SessionMusician(
        musician_id=musician.id,
        instrument_id=body.instrument_id,
        rate=body.rate,
        notes=body.notes,
    )
    session.participants.append(participant)
    return participant


def _notify_invited(db: Session, session: models.RecordingSession, organizer: models.User, musician_ids) -> None:
    when = session.start_time.strftime('%Y-%m-%d %H:%M')
    for musician_id in dict.fromkeys(musician_ids):
        notify(
            db,
            musician_id,
            'session_invitation',
            f"{organizer.full_name} invited you to the session '{session.title}' on {when}",
        )


@router.get("")
def list_sessions(
    status: Optional[SessionStatus] = None,
    project_id: Optional[int] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _visible_sessions(db, user)
    if status:
        query = query.filter(models.RecordingSession.status == status)
    if project_id is not None:
        query = query.filter(models.RecordingSession.project_id == project_id)
    sessions = query.order_by(models.RecordingSession.start_time).all()
    return [serialize_session(s) for s in sessions]


@router.get("/upcoming")
def upcoming_sessions(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    sessions = (
        _visible_sessions(db, user)
        .filter(
            models.RecordingSession.start_time >= utcnow(),
            models.RecordingSession.status.in_(ACTIVE_SESSION_STATUSES),
        )
        .order_by(models.RecordingSession.start_time)
        .limit(UPCOMING_LIMIT)
        .all()
    )
    return [serialize_session(s, with_participants=True) for s in sessions]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_session(body: SessionCreate, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_or_404(db, models.Project, body.project_id, 'Project')
    require_creator(project, user)
    if project.status in CLOSED_PROJECT_STATUSES:
        raise conflict(f"Project is {project.status}")
    session = models.RecordingSession(
        project_id=project.id,
        title=body.title.strip(),
        description=body.description,
        start_time=to_naive_utc(body.start_time),
        end_time=to_naive_utc(body.end_time),
        location=body.location,
        notes=body.notes,
    )
    _check_times(session)
    db.add(session)
    for participant in body.participants:
        _add_participant(db, session, user, participant)
    safe_commit(db)
    db.refresh(session)
    logger.info("Session %s created for project %s", session.id, project.id)
    _notify_invited(db, session, user, [p.musician_id for p in body.participants])
    return serialize_session(session, with_participants=True)


@router.get("/{session_id}")
def get_session_detail(session_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = get_session(db, session_id)
    if not is_organizer(session, user) and all(p.musician_id != user.id for p in session.participants):
        raise forbidden()
    return serialize_session(session, with_participants=True)


@router.put("/{session_id}")
def update_session(
    session_id: int,
    body: SessionUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = get_session(db, session_id)
    require_organizer(session, user)
    for field, value in body.model_dump(exclude_unset=True).items():
        if value is None and field in REQUIRED_SESSION_FIELDS:
            continue
        if field in ('start_time', 'end_time'):
            value = to_naive_utc(value)
        setattr(session, field, value)
    _check_times(session)
    safe_commit(db)
    return serialize_session(session, with_participants=True)


@router.patch("/{session_id}/status")
def update_session_status(
    session_id: int,
    body: SessionStatusUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = get_session(db, session_id)
    require_organizer(session, user)
    check_transition('session', session.status, body.status)
    logger.info("Session %s: %s -> %s", session.id, session.status, body.status)
    session.status = body.status
    if body.status == 'completed':
        for participant in session.participants:
            if participant.status == 'confirmed':
                participant.status = 'completed'
    safe_commit(db)
    return serialize_session(session, with_participants=True)


@router.delete("/{session_id}")
def delete_session(session_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    session = get_session(db, session_id)
    require_organizer(session, user)
    db.delete(session)
    safe_commit(db)
    return {'success': True}


# Participants -----------------------------------------------------------

@router.post("/{session_id}/participants", status_code=status.HTTP_201_CREATED)
def add_participant(
    session_id: int,
    body: ParticipantCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = get_session(db, session_id)
    require_organizer(session, user)
    if session.status not in ACTIVE_SESSION_STATUSES:
        raise conflict(f"Session is {session.status}")
    participant = _add_participant(db, session, user, body)
    safe_commit(db)
    _notify_invited(db, session, user, [participant.musician_id])
    return serialize_participant(participant)


@router.patch("/{session_id}/participants/{participant_id}")
def update_participant_status(
    session_id: int,
    participant_id: int,
    body: ParticipantStatusUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = get_session(db, session_id)
    require_organizer(session, user)
    participant = next((p for p in session.participants if p.id == participant_id), None)
    if participant is None:
        raise not_found('Participant')
    check_transition('participant', participant.status, body.status)
    participant.status = body.status
    safe_commit(db)
    return serialize_participant(participant)


@router.delete("/{session_id}/participants/{participant_id}")
def remove_participant(
    session_id: int,
    participant_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    session = get_session(db, session_id)
    require_organizer(session, user)
    participant = next((p for p in session.participants if p.id == participant_id), None)
    if participant is None:
        raise not_found('Participant')
    session.participants.remove(participant)
    safe_commit(db)
    return {'success': True}


@router.post("/{session_id}/respond")
def respond_to_session(
    session_id: int,
    body: ParticipantResponse,
    user: models.User = Depends(require_user_type("musician")),
    db: Session = Depends(get_db),
):
    """Confirm or decline every slot the current user holds in a session."""
    session = get_session(db, session_id)
    mine = [p for p in session.participants if p.musician_id == user.id]
    if not mine:
        raise forbidden("You are not invited to this session")
    for participant in mine:
        if participant.status != body.status or session.status in ('completed', 'cancelled'):
            check_participant_response(participant.status, body.status, session.status)
    for participant in mine:
        participant.status = body.status
    safe_commit(db)
    logger.info("User %s %s session %s", user.id, body.status, session.id)
    notify(
        db,
        session.project.creator_id,
        'session_response',
        f"{user.full_name} {body.status} the session '{session.title}'",
    )
    return serialize_session(session, with_participants=True)
