import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..models import User
from ..repositories import users as user_repo

logger = logging.getLogger(__name__)


def delete_user(db: Session, user_id: int, user: User) -> None:
    """Soft-delete the caller's own account."""
    if user_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="You can only delete your own account",
        )
    user_repo.soft_delete_user(db, user)
    logger.info("User %s deleted their account", user.id)
