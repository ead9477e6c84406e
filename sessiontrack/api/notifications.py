import logging
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.realtime import hub
from sessiontrack.utils import not_found
from sessiontrack.api.serializers import serialize_notification

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/notifications", tags=["notifications"])


def notify(db: Session, user_id: int, kind: str, message: str) -> models.Notification:
    """Store a notification for ``user_id`` and push it to their room."""
    notification = models.Notification(user_id=user_id, kind=kind, message=message)
    db.add(notification)
    safe_commit(db)
    hub.emit_threadsafe(user_id, 'notification', serialize_notification(notification))
    return notification


@router.get("")
def list_notifications(
    unread: Optional[bool] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.Notification).filter_by(user_id=user.id)
    if unread:
        query = query.filter(models.Notification.read.is_(False))
    rows = query.order_by(models.Notification.created_at.desc(), models.Notification.id.desc()).all()
    return [serialize_notification(n) for n in rows]


@router.post("/{notification_id}/read")
def mark_notification_read(
    notification_id: int,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    notification = db.query(models.Notification).filter_by(id=notification_id, user_id=user.id).first()
    if notification is None:
        raise not_found('Notification')
    notification.read = True
    safe_commit(db)
    return serialize_notification(notification)
