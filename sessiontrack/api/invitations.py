import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user, require_user_type
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import InvitationResponse, InvitationStatus
from sessiontrack.status import check_transition
from sessiontrack.utils import forbidden, get_or_404
from sessiontrack.api.notifications import notify
from sessiontrack.api.serializers import serialize_invitation

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/invitations", tags=["invitations"])


@router.get("")
def list_my_invitations(
    status: Optional[InvitationStatus] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.ProjectInvitation).filter_by(musician_id=user.id)
    if status:
        query = query.filter(models.ProjectInvitation.status == status)
    rows = query.order_by(models.ProjectInvitation.created_at.desc(), models.ProjectInvitation.id.desc()).all()
    return [serialize_invitation(inv) for inv in rows]


@router.post("/{invitation_id}/respond")
def respond_to_invitation(
    invitation_id: int,
    body: InvitationResponse,
    user: models.User = Depends(require_user_type("musician")),
    db: Session = Depends(get_db),
):
    invitation = get_or_404(db, models.ProjectInvitation, invitation_id, 'Invitation')
    if invitation.musician_id != user.id:
        raise forbidden("This invitation is not addressed to you")
    check_transition('invitation', invitation.status, body.status)
    invitation.status = body.status
    if body.status == 'accepted':
        need = (
            db.query(models.ProjectInstrument)
            .filter_by(project_id=invitation.project_id, instrument_id=invitation.instrument_id)
            .first()
        )
        if need is not None:
            need.filled = True
    safe_commit(db)
    logger.info("Invitation %s %s by user %s", invitation.id, body.status, user.id)
    project = invitation.project
    notify(
        db,
        project.creator_id,
        'invitation_response',
        f"{user.full_name} {body.status} your invitation to '{project.title}'",
    )
    return serialize_invitation(invitation)


@router.post("/{invitation_id}/cancel")
def cancel_invitation(
    invitation_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    invitation = get_or_404(db, models.ProjectInvitation, invitation_id, 'Invitation')
    if invitation.project.creator_id != user.id:
        raise forbidden("Only the project creator can cancel invitations")
    check_transition('invitation', invitation.status, 'cancelled')
    invitation.status = 'cancelled'
    safe_commit(db)
    return serialize_invitation(invitation)
