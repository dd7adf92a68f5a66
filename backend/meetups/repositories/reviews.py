from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from ..models import Review, User
from ..schemas import ReviewCreate, ReviewListQuery
from .users import is_active


def get_review(db: Session, review_id: int) -> Review | None:
    return db.get(Review, review_id)


def review_exists(db: Session, user_id: int, event_id: int) -> bool:
    row = db.execute(
        select(Review.id)
        .join(User, User.id == Review.user_id)
        .where(Review.user_id == user_id, Review.event_id == event_id, is_active())
    ).first()
    return row is not None


def list_reviews(db: Session, query: ReviewListQuery) -> list[Review]:
    stmt = select(Review).join(User, User.id == Review.user_id).where(is_active())
    if query.event_id is not None:
        stmt = stmt.where(Review.event_id == query.event_id)
    if query.user_id is not None:
        stmt = stmt.where(Review.user_id == query.user_id)
    return list(db.execute(stmt.order_by(Review.id.asc())).scalars().all())


def create_review(db: Session, user_id: int, payload: ReviewCreate) -> Review:
    review = Review(
        user_id=user_id,
        event_id=payload.event_id,
        score=payload.score,
        title=payload.title,
        description=payload.description,
    )
    db.add(review)
    db.flush()
    db.refresh(review)
    return review


def update_review(db: Session, review: Review, fields: dict[str, Any]) -> Review:
    for name, value in fields.items():
        setattr(review, name, value)
    db.flush()
    db.refresh(review)
    return review


def delete_review(db: Session, review: Review) -> None:
    db.delete(review)
    db.flush()
