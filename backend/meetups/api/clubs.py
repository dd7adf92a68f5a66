from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..models import ClubJoinStatus, User
from ..schemas import ClubCreate, ClubMemberOut, ClubOut, ClubUpdate, HandleApplicantRequest
from ..services import clubs as club_service

router = APIRouter()


@router.post("/api/clubs", response_model=ClubOut)
def create_club(
    payload: ClubCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return club_service.create_club(db, payload, user)


@router.get("/api/clubs", response_model=list[ClubOut])
def list_clubs(db: Session = Depends(get_db)):
    return club_service.list_clubs(db)


@router.get("/api/clubs/{club_id}", response_model=ClubOut)
def get_club(club_id: int, db: Session = Depends(get_db)):
    return club_service.get_club(db, club_id)


@router.get("/api/clubs/{club_id}/members", response_model=list[ClubMemberOut])
def get_club_members(
    club_id: int,
    status: ClubJoinStatus = ClubJoinStatus.MEMBER,
    db: Session = Depends(get_db),
):
    return club_service.get_club_members_by_status(db, club_id, status)


@router.patch("/api/clubs/{club_id}/members/{member_id}/status", status_code=status.HTTP_204_NO_CONTENT)
def handle_applicant(
    club_id: int,
    member_id: int,
    payload: HandleApplicantRequest,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    club_service.handle_applicant(db, club_id, member_id, payload, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/api/clubs/{club_id}", response_model=ClubOut)
def update_club(
    club_id: int,
    payload: ClubUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return club_service.update_club(db, club_id, payload, user)


@router.post("/api/clubs/{club_id}/join", status_code=status.HTTP_204_NO_CONTENT)
def join_club(
    club_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    club_service.join_club(db, club_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/clubs/{club_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_club(
    club_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    club_service.leave_club(db, club_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.delete("/api/clubs/{club_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_club(
    club_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    club_service.delete_club_with_events(db, club_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
