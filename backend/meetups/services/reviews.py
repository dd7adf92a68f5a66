import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..models import Review, User
from ..repositories import clubs as club_repo
from ..repositories import events as event_repo
from ..repositories import reviews as review_repo
from ..schemas import ReviewCreate, ReviewListQuery, ReviewOut, ReviewPatch, ReviewPut
from ..time_utils import utcnow
from .events import can_view_event, visibility_context

logger = logging.getLogger(__name__)


def create_review(db: Session, payload: ReviewCreate, user: User) -> ReviewOut:
    if review_repo.review_exists(db, user.id, payload.event_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You already reviewed this event",
        )
    if not event_repo.is_user_joined(db, payload.event_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You did not attend this event",
        )

    event = event_repo.get_event(db, payload.event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    if event.end_time > utcnow():
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Event has not ended yet",
        )
    if event.host_id == user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Hosts cannot review their own event",
        )

    review = review_repo.create_review(db, user.id, payload)
    logger.info("Review %s created by user %s for event %s", review.id, user.id, event.id)
    return ReviewOut.model_validate(review)


def get_review(db: Session, review_id: int, user: User) -> ReviewOut:
    review = review_repo.get_review(db, review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")

    event = event_repo.get_event(db, review.event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Event not found")
    # archived events stay readable by id, only club scoping applies here
    if event.club_id is not None and not club_repo.is_club_member(db, event.club_id, user.id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You do not have access to this review",
        )
    return ReviewOut.model_validate(review)


def list_reviews(db: Session, query: ReviewListQuery, user: User) -> list[ReviewOut]:
    reviews = review_repo.list_reviews(db, query)
    events = event_repo.get_events_by_ids(db, {r.event_id for r in reviews})
    member_club_ids, joined_event_ids = visibility_context(db, user.id)

    visible = []
    for review in reviews:
        event = events.get(review.event_id)
        if event is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Review {review.id} has no event",
            )
        if can_view_event(event, member_club_ids, joined_event_ids):
            visible.append(ReviewOut.model_validate(review))
    return visible


def _get_own_review(db: Session, review_id: int, user: User) -> Review:
    review = review_repo.get_review(db, review_id)
    if not review:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Review not found")
    if review.user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only the author can modify this review",
        )
    return review


def put_update_review(db: Session, review_id: int, payload: ReviewPut, user: User) -> ReviewOut:
    review = _get_own_review(db, review_id, user)
    review = review_repo.update_review(
        db,
        review,
        {"score": payload.score, "title": payload.title, "description": payload.description},
    )
    logger.info("Review %s replaced by user %s", review_id, user.id)
    return ReviewOut.model_validate(review)


def patch_update_review(db: Session, review_id: int, payload: ReviewPatch, user: User) -> ReviewOut:
    fields = payload.model_dump(exclude_unset=True)
    for name in ("score", "title"):
        if name in fields and fields[name] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name} cannot be null",
            )

    review = _get_own_review(db, review_id, user)
    review = review_repo.update_review(db, review, fields)
    logger.info("Review %s patched by user %s: %s", review_id, user.id, sorted(fields))
    return ReviewOut.model_validate(review)


def delete_review(db: Session, review_id: int, user: User) -> None:
    review = _get_own_review(db, review_id, user)
    review_repo.delete_review(db, review)
    logger.info("Review %s deleted by user %s", review_id, user.id)
