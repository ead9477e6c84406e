import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.config import RECENT_LIMIT
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import PaymentCreate, PaymentStatus, PaymentStatusUpdate
from sessiontrack.status import check_transition
from sessiontrack.utils import bad_request, forbidden, get_or_404
from sessiontrack.api.notifications import notify
from sessiontrack.api.serializers import serialize_payment

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/payments", tags=["payments"])


def _my_payments(db: Session, user: models.User):
    return db.query(models.Payment).filter(
        or_(models.Payment.payer_id == user.id, models.Payment.payee_id == user.id)
    )


@router.get("")
def list_payments(
    status: Optional[PaymentStatus] = None,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = _my_payments(db, user)
    if status:
        query = query.filter(models.Payment.status == status)
    rows = query.order_by(models.Payment.created_at.desc(), models.Payment.id.desc()).all()
    return [serialize_payment(p) for p in rows]


@router.get("/recent")
def recent_payments(user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    rows = (
        _my_payments(db, user)
        .order_by(models.Payment.created_at.desc(), models.Payment.id.desc())
        .limit(RECENT_LIMIT)
        .all()
    )
    return [serialize_payment(p) for p in rows]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_payment(body: PaymentCreate, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    if body.payee_id == user.id:
        raise bad_request("Payer and payee must be different users")
    get_or_404(db, models.User, body.payee_id, 'Payee')
    project_id = body.project_id
    if body.session_id is not None:
        session = get_or_404(db, models.RecordingSession, body.session_id, 'Session')
        if project_id is None:
            project_id = session.project_id
        elif project_id != session.project_id:
            raise bad_request("Session does not belong to the given project")
    if project_id is not None:
        get_or_404(db, models.Project, project_id, 'Project')
    payment = models.Payment(
        payer_id=user.id,
        payee_id=body.payee_id,
        amount=body.amount,
        session_id=body.session_id,
        project_id=project_id,
        payment_method=body.payment_method,
        transaction_id=body.transaction_id,
        notes=body.notes,
    )
    db.add(payment)
    safe_commit(db)
    logger.info("Payment %s recorded: %s -> %s (%s)", payment.id, user.id, body.payee_id, body.amount)
    return serialize_payment(payment)


@router.get("/{payment_id}")
def get_payment(payment_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    payment = get_or_404(db, models.Payment, payment_id, 'Payment')
    if user.id not in (payment.payer_id, payment.payee_id):
        raise forbidden()
    return serialize_payment(payment)


@router.patch("/{payment_id}/status")
def update_payment_status(
    payment_id: int,
    body: PaymentStatusUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    payment = get_or_404(db, models.Payment, payment_id, 'Payment')
    if payment.payer_id != user.id:
        raise forbidden("Only the payer can update a payment")
    check_transition('payment', payment.status, body.status)
    logger.info("Payment %s: %s -> %s", payment.id, payment.status, body.status)
    payment.status = body.status
    if body.transaction_id:
        payment.transaction_id = body.transaction_id
    safe_commit(db)
    if body.status == 'completed':
        notify(
            db,
            payment.payee_id,
            'payment_completed',
            f"{user.full_name} paid you {payment.amount:.2f}",
        )
    return serialize_payment(payment)
