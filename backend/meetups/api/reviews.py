from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..models import User
from ..schemas import ReviewCreate, ReviewListQuery, ReviewOut, ReviewPatch, ReviewPut
from ..services import reviews as review_service

router = APIRouter()


@router.post("/api/reviews", response_model=ReviewOut)
def create_review(
    payload: ReviewCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return review_service.create_review(db, payload, user)


@router.get("/api/reviews", response_model=list[ReviewOut])
def list_reviews(
    event_id: int | None = None,
    user_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    query = ReviewListQuery(event_id=event_id, user_id=user_id)
    return review_service.list_reviews(db, query, user)


@router.get("/api/reviews/{review_id}", response_model=ReviewOut)
def get_review(
    review_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return review_service.get_review(db, review_id, user)


@router.put("/api/reviews/{review_id}", response_model=ReviewOut)
def put_update_review(
    review_id: int,
    payload: ReviewPut,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return review_service.put_update_review(db, review_id, payload, user)


@router.patch("/api/reviews/{review_id}", response_model=ReviewOut)
def patch_update_review(
    review_id: int,
    payload: ReviewPatch,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return review_service.patch_update_review(db, review_id, payload, user)


@router.delete("/api/reviews/{review_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_review(
    review_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    review_service.delete_review(db, review_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
