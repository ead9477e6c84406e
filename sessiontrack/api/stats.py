from fastapi import APIRouter, Depends
from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, utcnow
from sessiontrack.db import models
from sessiontrack.utils import money

router = APIRouter(tags=["stats"])

ACTIVE_SESSION_STATUSES = ('scheduled', 'in_progress')


@router.get("/stats")
def dashboard_stats(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Counters shown on the dashboard.  Keys are camelCase for the client."""
    participating = select(models.SessionMusician.session_id).where(models.SessionMusician.musician_id == user.id)
    sessions = (
        db.query(func.count(models.RecordingSession.id))
        .join(models.Project, models.Project.id == models.RecordingSession.project_id)
        .filter(or_(models.Project.creator_id == user.id, models.RecordingSession.id.in_(participating)))
    )
    total_sessions = sessions.scalar()
    upcoming = sessions.filter(
        models.RecordingSession.start_time >= utcnow(),
        models.RecordingSession.status.in_(ACTIVE_SESSION_STATUSES),
    ).scalar()
    completed = sessions.filter(models.RecordingSession.status == 'completed').scalar()

    pending_invitations = (
        db.query(func.count(models.ProjectInvitation.id))
        .filter_by(musician_id=user.id, status='pending')
        .scalar()
    )
    pending_invitations += (
        db.query(func.count(models.SessionMusician.id))
        .join(models.RecordingSession, models.RecordingSession.id == models.SessionMusician.session_id)
        .filter(
            models.SessionMusician.musician_id == user.id,
            models.SessionMusician.status == 'invited',
            models.RecordingSession.status.in_(ACTIVE_SESSION_STATUSES),
        )
        .scalar()
    )

    pending_payments = (
        db.query(func.count(models.Payment.id))
        .filter(
            or_(models.Payment.payer_id == user.id, models.Payment.payee_id == user.id),
            models.Payment.status == 'pending',
        )
        .scalar()
    )
    earnings = (
        db.query(func.coalesce(func.sum(models.Payment.amount), 0))
        .filter(models.Payment.payee_id == user.id, models.Payment.status == 'completed')
        .scalar()
    )

    return {
        'totalSessions': total_sessions,
        'pendingInvitations': pending_invitations,
        'upcomingSessions': upcoming,
        'pendingPayments': pending_payments,
        'totalEarnings': money(earnings) or 0.0,
        'completedSessions': completed,
    }
