import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import (
    InstrumentNeed,
    InvitationCreate,
    ProjectCreate,
    ProjectStatus,
    ProjectStatusUpdate,
    ProjectUpdate,
)
from sessiontrack.status import check_transition
from sessiontrack.utils import bad_request, conflict, forbidden, get_or_404, not_found
from sessiontrack.api.notifications import notify
from sessiontrack.api.serializers import serialize_invitation, serialize_project

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/projects", tags=["projects"])

CLOSED_PROJECT_STATUSES = ('completed', 'cancelled')


def get_project(db: Session, project_id: int) -> models.Project:
    return get_or_404(db, models.Project, project_id, 'Project')


def require_creator(project: models.Project, user: models.User) -> None:
    if project.creator_id != user.id:
        raise forbidden("Only the project creator can do this")


def can_view_project(db: Session, project: models.Project, user: models.User) -> bool:
    if project.creator_id == user.id or project.status == 'open':
        return True
    invited = (
        db.query(models.ProjectInvitation.id)
        .filter_by(project_id=project.id, musician_id=user.id)
        .first()
    )
    if invited:
        return True
    participant = (
        db.query(models.SessionMusician.id)
        .join(models.RecordingSession, models.RecordingSession.id == models.SessionMusician.session_id)
        .filter(models.RecordingSession.project_id == project.id, models.SessionMusician.musician_id == user.id)
        .first()
    )
    return participant is not None


def _check_dates(project: models.Project) -> None:
    if project.start_date and project.end_date and project.end_date < project.start_date:
        raise bad_request("End date cannot precede start date")


def _set_genres(db: Session, project: models.Project, genre_ids: list[int]) -> None:
    genre_ids = list(dict.fromkeys(genre_ids))
    for genre_id in genre_ids:
        get_or_404(db, models.Genre, genre_id, 'Genre')
    project.genres.clear()
    db.flush()
    for genre_id in genre_ids:
        project.genres.append(models.ProjectGenre(genre_id=genre_id))


def _add_instrument_need(db: Session, project: models.Project, need: InstrumentNeed) -> models.ProjectInstrument:
    get_or_404(db, models.Instrument, need.instrument_id, 'Instrument')
    if any(pi.instrument_id == need.instrument_id for pi in project.instruments):
        raise conflict("Instrument is already listed for this project")
    pi = models.ProjectInstrument(instrument_id=need.instrument_id, requirements=need.requirements)
    project.instruments.append(pi)
    return pi


@router.get("")
def list_projects(
    status: Optional[ProjectStatus] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    accepted = select(models.ProjectInvitation.project_id).where(
        models.ProjectInvitation.musician_id == user.id,
        models.ProjectInvitation.status == 'accepted',
    )
    query = db.query(models.Project).filter(
        or_(models.Project.creator_id == user.id, models.Project.id.in_(accepted))
    )
    if status:
        query = query.filter(models.Project.status == status)
    projects = query.order_by(models.Project.created_at.desc(), models.Project.id.desc()).all()
    return [serialize_project(p) for p in projects]


@router.get("/open")
def list_open_projects(_user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    projects = (
        db.query(models.Project)
        .filter_by(status='open')
        .order_by(models.Project.created_at.desc(), models.Project.id.desc())
        .all()
    )
    return [serialize_project(p, detail=True) for p in projects]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_project(body: ProjectCreate, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = models.Project(
        title=body.title.strip(),
        description=body.description.strip(),
        creator_id=user.id,
        status=body.status,
        start_date=body.start_date,
        end_date=body.end_date,
        budget=body.budget,
    )
    _check_dates(project)
    db.add(project)
    db.flush()
    _set_genres(db, project, body.genre_ids)
    for need in body.instruments:
        _add_instrument_need(db, project, need)
    safe_commit(db)
    db.refresh(project)
    logger.info("Project %s created by user %s", project.id, user.id)
    return serialize_project(project, detail=True, include_invitations=True)


@router.get("/{project_id}")
def get_project_detail(project_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_project(db, project_id)
    if not can_view_project(db, project, user):
        raise forbidden()
    return serialize_project(project, detail=True, include_invitations=project.creator_id == user.id)


@router.put("/{project_id}")
def update_project(
    project_id: int,
    body: ProjectUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    changes = body.model_dump(exclude_unset=True)
    genre_ids = changes.pop('genre_ids', None)
    for field, value in changes.items():
        if value is None and field in ('title', 'description'):
            continue
        setattr(project, field, value)
    _check_dates(project)
    if genre_ids is not None:
        _set_genres(db, project, genre_ids)
    safe_commit(db)
    db.refresh(project)
    return serialize_project(project, detail=True, include_invitations=True)


@router.patch("/{project_id}/status")
def update_project_status(
    project_id: int,
    body: ProjectStatusUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    check_transition('project', project.status, body.status)
    logger.info("Project %s: %s -> %s", project.id, project.status, body.status)
    project.status = body.status
    safe_commit(db)
    return serialize_project(project)


@router.delete("/{project_id}")
def delete_project(project_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    project = get_project(db, project_id)
    require_creator(project, user)
    db.delete(project)
    safe_commit(db)
    return {'success': True}


# Instrument needs -------------------------------------------------------

@router.post("/{project_id}/instruments", status_code=status.HTTP_201_CREATED)
def add_project_instrument(
    project_id: int,
    body: InstrumentNeed,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    _add_instrument_need(db, project, body)
    safe_commit(db)
    db.refresh(project)
    return serialize_project(project, detail=True)


@router.delete("/{project_id}/instruments/{instrument_id}")
def remove_project_instrument(
    project_id: int,
    instrument_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    need = next((pi for pi in project.instruments if pi.instrument_id == instrument_id), None)
    if need is None:
        raise not_found('Project instrument')
    project.instruments.remove(need)
    safe_commit(db)
    db.refresh(project)
    return serialize_project(project, detail=True)


# Invitations ------------------------------------------------------------

@router.post("/{project_id}/invitations", status_code=status.HTTP_201_CREATED)
def invite_musician(
    project_id: int,
    body: InvitationCreate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    if project.status in CLOSED_PROJECT_STATUSES:
        raise conflict(f"Project is {project.status}")
    if body.musician_id == user.id:
        raise bad_request("You cannot invite yourself")
    musician = get_or_404(db, models.User, body.musician_id, 'Musician')
    if musician.user_type != 'musician':
        raise bad_request("Only musicians can be invited")
    instrument = get_or_404(db, models.Instrument, body.instrument_id, 'Instrument')
    existing = (
        db.query(models.ProjectInvitation)
        .filter_by(project_id=project.id, musician_id=musician.id, instrument_id=instrument.id)
        .first()
    )
    if existing:
        raise conflict("Musician already invited for this instrument")
    invitation = models.ProjectInvitation(
        project_id=project.id,
        musician_id=musician.id,
        instrument_id=instrument.id,
        message=body.message,
        rate=body.rate,
    )
    db.add(invitation)
    safe_commit(db)
    notify(
        db,
        musician.id,
        'project_invitation',
        f"{user.full_name} invited you to play {instrument.name} on '{project.title}'",
    )
    return serialize_invitation(invitation)


@router.get("/{project_id}/invitations")
def list_project_invitations(
    project_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    project = get_project(db, project_id)
    require_creator(project, user)
    return [serialize_invitation(inv) for inv in project.invitations]
