from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..models import User
from ..schemas import UserOut
from ..services import users as user_service

router = APIRouter()


@router.get("/api/users/me", response_model=UserOut)
def me(user: User = Depends(get_user)):
    return UserOut.model_validate(user)


@router.delete("/api/users/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    user_service.delete_user(db, user_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
