import logging

from fastapi import APIRouter, Depends, status
from sqlalchemy import and_, func, or_
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.realtime import hub
from sessiontrack.schemas import MessageCreate
from sessiontrack.utils import bad_request, clean_text, forbidden, get_or_404, iso
from sessiontrack.api.serializers import serialize_message, serialize_user_brief

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/messages", tags=["messages"])


@router.post("", status_code=status.HTTP_201_CREATED)
def send_message(body: MessageCreate, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    content = clean_text(body.content)
    if not content:
        raise bad_request("Message content is required")
    if body.recipient_id == user.id:
        raise bad_request("You cannot message yourself")
    get_or_404(db, models.User, body.recipient_id, 'Recipient')
    if body.project_id is not None:
        get_or_404(db, models.Project, body.project_id, 'Project')
    if body.session_id is not None:
        get_or_404(db, models.RecordingSession, body.session_id, 'Session')
    message = models.Message(
        sender_id=user.id,
        recipient_id=body.recipient_id,
        content=content,
        project_id=body.project_id,
        session_id=body.session_id,
    )
    db.add(message)
    safe_commit(db)
    logger.info("Message %s sent: %s -> %s", message.id, user.id, body.recipient_id)
    data = serialize_message(message)
    hub.emit_threadsafe(
        body.recipient_id,
        'private-message',
        {**data, 'from': user.id, 'message': content, 'time': data['created_at']},
    )
    return data


@router.get("/conversations")
def list_conversations(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Return one entry per counterpart, most recent conversation first."""
    messages = (
        db.query(models.Message)
        .filter(or_(models.Message.sender_id == user.id, models.Message.recipient_id == user.id))
        .order_by(models.Message.created_at.desc(), models.Message.id.desc())
        .all()
    )
    conversations: dict[int, dict] = {}
    for message in messages:
        other_id = message.recipient_id if message.sender_id == user.id else message.sender_id
        entry = conversations.get(other_id)
        if entry is None:
            other = message.recipient if message.sender_id == user.id else message.sender
            entry = conversations[other_id] = {
                'id': other_id,
                'participant_ids': sorted([user.id, other_id]),
                'participant': serialize_user_brief(other),
                'last_message': serialize_message(message),
                'unread_count': 0,
            }
        if message.recipient_id == user.id and not message.read:
            entry['unread_count'] += 1
    return list(conversations.values())


@router.get("/unread-count")
def unread_count(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    count = (
        db.query(func.count(models.Message.id))
        .filter(models.Message.recipient_id == user.id, models.Message.read.is_(False))
        .scalar()
    )
    return {'unread': count}


@router.get("/{user_id}")
def get_thread(
    user_id: int,
    mark_read: bool = False,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    get_or_404(db, models.User, user_id, 'User')
    messages = (
        db.query(models.Message)
        .filter(or_(
            and_(models.Message.sender_id == user.id, models.Message.recipient_id == user_id),
            and_(models.Message.sender_id == user_id, models.Message.recipient_id == user.id),
        ))
        .order_by(models.Message.created_at, models.Message.id)
        .all()
    )
    if mark_read:
        changed = False
        for message in messages:
            if message.recipient_id == user.id and not message.read:
                message.read = True
                changed = True
        if changed:
            safe_commit(db)
    return [serialize_message(m) for m in messages]


@router.post("/{message_id}/read")
def mark_message_read(message_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    message = get_or_404(db, models.Message, message_id, 'Message')
    if message.recipient_id != user.id:
        raise forbidden("Only the recipient can mark a message as read")
    if not message.read:
        message.read = True
        safe_commit(db)
        hub.emit_threadsafe(message.sender_id, 'message-read', {'id': message.id, 'read_at': iso(message.updated_at)})
    return serialize_message(message)
