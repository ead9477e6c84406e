import logging
from typing import Optional

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from sessiontrack.auth import get_current_user
from sessiontrack.db import get_db, safe_commit
from sessiontrack.db import models
from sessiontrack.schemas import ReviewCreate, ReviewUpdate
from sessiontrack.utils import bad_request, conflict, forbidden, get_or_404
from sessiontrack.api.serializers import serialize_review

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reviews", tags=["reviews"])


@router.get("")
def list_reviews(
    reviewee_id: Optional[int] = None,
    reviewer_id: Optional[int] = None,
    project_id: Optional[int] = None,
    _user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    query = db.query(models.Review)
    if reviewee_id is not None:
        query = query.filter(models.Review.reviewee_id == reviewee_id)
    if reviewer_id is not None:
        query = query.filter(models.Review.reviewer_id == reviewer_id)
    if project_id is not None:
        query = query.filter(models.Review.project_id == project_id)
    rows = query.order_by(models.Review.created_at.desc(), models.Review.id.desc()).all()
    return [serialize_review(r) for r in rows]


@router.post("", status_code=status.HTTP_201_CREATED)
def create_review(body: ReviewCreate, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    if body.reviewee_id == user.id:
        raise bad_request("You cannot review yourself")
    get_or_404(db, models.User, body.reviewee_id, 'User')
    if body.project_id is not None:
        get_or_404(db, models.Project, body.project_id, 'Project')
    # NULL project ids never collide in a unique index
    existing = (
        db.query(models.Review.id)
        .filter(
            models.Review.reviewer_id == user.id,
            models.Review.reviewee_id == body.reviewee_id,
            models.Review.project_id.is_(None) if body.project_id is None
            else models.Review.project_id == body.project_id,
        )
        .first()
    )
    if existing:
        raise conflict("You have already reviewed this user for this project")
    review = models.Review(
        reviewer_id=user.id,
        reviewee_id=body.reviewee_id,
        project_id=body.project_id,
        rating=body.rating,
        content=body.content,
    )
    db.add(review)
    safe_commit(db)
    logger.info("Review %s: user %s rated user %s %s/5", review.id, user.id, body.reviewee_id, body.rating)
    return serialize_review(review)


def _own_review(db: Session, review_id: int, user: models.User) -> models.Review:
    review = get_or_404(db, models.Review, review_id, 'Review')
    if review.reviewer_id != user.id:
        raise forbidden("You can only modify your own reviews")
    return review


@router.put("/{review_id}")
def update_review(
    review_id: int,
    body: ReviewUpdate,
    user: models.User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    review = _own_review(db, review_id, user)
    changes = body.model_dump(exclude_unset=True)
    if changes.get('rating') is None:
        changes.pop('rating', None)
    for field, value in changes.items():
        setattr(review, field, value)
    safe_commit(db)
    return serialize_review(review)


@router.delete("/{review_id}")
def delete_review(review_id: int, user: models.User = Depends(get_current_user), db: Session = Depends(get_db)):
    review = _own_review(db, review_id, user)
    db.delete(review)
    safe_commit(db)
    return {'success': True}
