from typing import Iterable

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ..models import User
from ..time_utils import utcnow


def is_active():
    """SQL predicate for users that have not been soft-deleted.

    Every membership, attendance and review query goes through this instead
    of checking ``deleted_at`` itself.
    """
    return User.deleted_at.is_(None)


def get_active_user(db: Session, user_id: int) -> User | None:
    return db.execute(
        select(User).where(User.id == user_id, is_active())
    ).scalar_one_or_none()


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.execute(select(User).where(User.email == email)).scalar_one_or_none()


def users_exist(db: Session, user_ids: Iterable[int]) -> bool:
    ids = set(user_ids)
    if not ids:
        return False
    found = db.execute(
        select(func.count(User.id)).where(User.id.in_(ids), is_active())
    ).scalar() or 0
    return found == len(ids)


def create_user(db: Session, name: str, email: str, password_hash: str) -> User:
    user = User(name=name, email=email, password_hash=password_hash)
    db.add(user)
    db.flush()
    db.refresh(user)
    return user


def soft_delete_user(db: Session, user: User) -> None:
    user.deleted_at = utcnow()
    db.flush()
