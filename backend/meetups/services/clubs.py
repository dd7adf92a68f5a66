import logging

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..models import Club, ClubJoin, ClubJoinStatus, User
from ..repositories import clubs as club_repo
from ..repositories import users as user_repo
from ..schemas import (
    ApplicantDecision,
    ClubCreate,
    ClubMemberOut,
    ClubOut,
    ClubUpdate,
    HandleApplicantRequest,
)
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


def _serialize_club(club: Club, members: list[ClubJoin]) -> ClubOut:
    return ClubOut(
        id=club.id,
        title=club.title,
        description=club.description,
        leader_id=club.leader_id,
        max_people=club.max_people,
        members=[ClubMemberOut.model_validate(m) for m in members],
    )


def _club_out(db: Session, club: Club) -> ClubOut:
    memberships = club_repo.get_memberships(db, [club.id])
    return _serialize_club(club, memberships[club.id])


def _get_club_or_404(db: Session, club_id: int) -> Club:
    club = club_repo.get_club(db, club_id)
    if not club:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")
    return club


def create_club(db: Session, payload: ClubCreate, user: User) -> ClubOut:
    member_ids = list(dict.fromkeys(payload.member_ids))
    if not user_repo.users_exist(db, member_ids):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="member_ids must all reference existing users",
        )
    if user.id not in member_ids:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="The club leader must be one of the members",
        )
    if len(member_ids) > payload.max_people:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="More members than max_people allows",
        )

    club = club_repo.create_club(
        db,
        title=payload.title,
        description=payload.description,
        leader_id=user.id,
        max_people=payload.max_people,
        member_ids=member_ids,
    )
    logger.info("Club %s created by user %s with %d members", club.id, user.id, len(member_ids))
    return _club_out(db, club)


def get_club(db: Session, club_id: int) -> ClubOut:
    return _club_out(db, _get_club_or_404(db, club_id))


def list_clubs(db: Session) -> list[ClubOut]:
    clubs = club_repo.list_clubs(db)
    memberships = club_repo.get_memberships(db, [club.id for club in clubs])
    return [_serialize_club(club, memberships[club.id]) for club in clubs]


def get_club_members_by_status(
    db: Session, club_id: int, member_status: ClubJoinStatus
) -> list[ClubMemberOut]:
    _get_club_or_404(db, club_id)
    members = club_repo.get_members_by_status(db, club_id, member_status)
    return [ClubMemberOut.model_validate(m) for m in members]


def handle_applicant(
    db: Session,
    club_id: int,
    user_id: int,
    payload: HandleApplicantRequest,
    user: User,
) -> None:
    club = _get_club_or_404(db, club_id)
    if club.leader_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Only the club leader can decide on applicants",
        )
    if not user_repo.users_exist(db, [user_id]):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User does not exist",
        )

    if payload.decision == ApplicantDecision.ACCEPT:
        if club.max_people <= club_repo.count_members(db, club_id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Club is full")

    membership = club_repo.get_club_join(db, club_id, user_id)
    if not membership or membership.status != ClubJoinStatus.APPLICANT:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="User has not applied to this club",
        )

    if payload.decision == ApplicantDecision.ACCEPT:
        club_repo.set_member_status(db, membership, ClubJoinStatus.MEMBER)
    else:
        club_repo.set_member_status(db, membership, ClubJoinStatus.REJECTED)
    logger.info("Club %s applicant %s: %s", club_id, user_id, payload.decision.value)


def update_club(db: Session, club_id: int, payload: ClubUpdate, user: User) -> ClubOut:
    club = _get_club_or_404(db, club_id)
    if club.leader_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only the club leader can update the club",
        )

    fields = payload.model_dump(exclude_unset=True)
    for name in ("title", "description", "leader_id", "max_people"):
        if name in fields and fields[name] is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name} cannot be null",
            )

    leader_id = fields.get("leader_id")
    if leader_id is not None:
        if not user_repo.users_exist(db, [leader_id]):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"User {leader_id} does not exist",
            )
        if not club_repo.is_club_member(db, club_id, leader_id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Only a club member can become the leader",
            )

    max_people = fields.get("max_people")
    if max_people is not None and max_people < club_repo.count_members(db, club_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="max_people cannot be lower than the current member count",
        )

    club = club_repo.update_club(db, club, fields)
    logger.info("Club %s updated by user %s: %s", club_id, user.id, sorted(fields))
    return _club_out(db, club)


def join_club(db: Session, club_id: int, user: User) -> None:
    club = _get_club_or_404(db, club_id)

    membership = club_repo.get_club_join(db, club_id, user.id)
    if membership and membership.status == ClubJoinStatus.MEMBER:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already a member")
    if membership and membership.status == ClubJoinStatus.APPLICANT:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Request already pending")

    if club.max_people <= club_repo.count_members(db, club_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Club is full")

    if membership:
        # a rejected applicant may apply again
        club_repo.set_member_status(db, membership, ClubJoinStatus.APPLICANT)
    else:
        club_repo.add_applicant(db, club_id, user.id)
    logger.info("User %s applied to club %s", user.id, club_id)


def leave_club(db: Session, club_id: int, user: User) -> None:
    club = _get_club_or_404(db, club_id)
    if club.leader_id == user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The club leader cannot leave the club",
        )
    if not club_repo.is_club_member(db, club_id, user.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Not a member of this club")

    club_repo.leave_club(db, club_id, user.id, utcnow())
    logger.info("User %s left club %s", user.id, club_id)


def delete_club_with_events(db: Session, club_id: int, user: User) -> None:
    club = _get_club_or_404(db, club_id)
    if club.leader_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only the club leader can delete the club",
        )

    club_repo.delete_club_with_events(db, club, utcnow())
    logger.info("Club %s deleted by user %s", club_id, user.id)
