import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..auth_utils import create_access_token, hash_password, verify_password
from ..deps import get_db
from ..repositories import users as user_repo
from ..schemas import LoginRequest, RegisterRequest, TokenOut, UserOut

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/auth/register", response_model=UserOut)
def register(payload: RegisterRequest, db: Session = Depends(get_db)):
    if user_repo.get_user_by_email(db, payload.email):
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Email already registered")

    user = user_repo.create_user(
        db,
        name=payload.name,
        email=payload.email,
        password_hash=hash_password(payload.password),
    )
    logger.info("Registered user %s", user.id)
    return UserOut.model_validate(user)


@router.post("/api/auth/login", response_model=TokenOut)
def login(payload: LoginRequest, db: Session = Depends(get_db)):
    user = user_repo.get_user_by_email(db, payload.email.strip().lower())
    if (
        not user
        or user.deleted_at is not None
        or not verify_password(payload.password, user.password_hash)
    ):
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    return TokenOut(access_token=create_access_token(user.id))
