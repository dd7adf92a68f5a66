from collections import defaultdict
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..db import atomic
from ..models import Club, ClubJoin, ClubJoinStatus, Event, User
from . import events as event_repo
from .users import is_active


def get_club(db: Session, club_id: int) -> Club | None:
    return db.get(Club, club_id)


def list_clubs(db: Session) -> list[Club]:
    return list(db.execute(select(Club).order_by(Club.id.asc())).scalars().all())


def get_memberships(db: Session, club_ids: Iterable[int]) -> dict[int, list[ClubJoin]]:
    ids = set(club_ids)
    memberships: dict[int, list[ClubJoin]] = defaultdict(list)
    if not ids:
        return memberships
    rows = db.execute(
        select(ClubJoin)
        .join(User, User.id == ClubJoin.user_id)
        .where(ClubJoin.club_id.in_(ids), is_active())
        .order_by(ClubJoin.id.asc())
    ).scalars().all()
    for join in rows:
        memberships[join.club_id].append(join)
    return memberships


def create_club(
    db: Session,
    title: str,
    description: str,
    leader_id: int,
    max_people: int,
    member_ids: Iterable[int],
) -> Club:
    club = Club(
        title=title,
        description=description,
        leader_id=leader_id,
        max_people=max_people,
    )
    db.add(club)
    db.flush()
    db.add_all(
        ClubJoin(club_id=club.id, user_id=user_id, status=ClubJoinStatus.MEMBER)
        for user_id in member_ids
    )
    db.flush()
    db.refresh(club)
    return club


def get_members_by_status(db: Session, club_id: int, status: ClubJoinStatus) -> list[ClubJoin]:
    return list(
        db.execute(
            select(ClubJoin)
            .join(User, User.id == ClubJoin.user_id)
            .where(ClubJoin.club_id == club_id, ClubJoin.status == status, is_active())
            .order_by(ClubJoin.id.asc())
        )
        .scalars()
        .all()
    )


def count_members(db: Session, club_id: int) -> int:
    return db.execute(
        select(func.count(ClubJoin.id))
        .join(User, User.id == ClubJoin.user_id)
        .where(
            ClubJoin.club_id == club_id,
            ClubJoin.status == ClubJoinStatus.MEMBER,
            is_active(),
        )
    ).scalar() or 0


def get_club_join(db: Session, club_id: int, user_id: int) -> ClubJoin | None:
    return db.execute(
        select(ClubJoin)
        .join(User, User.id == ClubJoin.user_id)
        .where(ClubJoin.club_id == club_id, ClubJoin.user_id == user_id, is_active())
    ).scalar_one_or_none()


def is_club_member(db: Session, club_id: int, user_id: int) -> bool:
    join = get_club_join(db, club_id, user_id)
    return join is not None and join.status == ClubJoinStatus.MEMBER


def get_member_club_ids(db: Session, user_id: int) -> set[int]:
    rows = db.execute(
        select(ClubJoin.club_id)
        .join(User, User.id == ClubJoin.user_id)
        .where(
            ClubJoin.user_id == user_id,
            ClubJoin.status == ClubJoinStatus.MEMBER,
            is_active(),
        )
    ).scalars().all()
    return set(rows)


def update_club(db: Session, club: Club, fields: dict[str, Any]) -> Club:
    for name, value in fields.items():
        setattr(club, name, value)
    db.flush()
    db.refresh(club)
    return club


def add_applicant(db: Session, club_id: int, user_id: int) -> None:
    db.add(ClubJoin(club_id=club_id, user_id=user_id, status=ClubJoinStatus.APPLICANT))
    db.flush()


def set_member_status(db: Session, membership: ClubJoin, status: ClubJoinStatus) -> None:
    membership.status = status
    db.flush()


def leave_club(db: Session, club_id: int, user_id: int, now: datetime) -> None:
    """Drop a member and everything they still have pending in the club.

    Future events of the club hosted by the member are removed outright and
    the member's attendance at the club's other future events is withdrawn.
    """
    future_events = db.execute(
        select(Event).where(Event.club_id == club_id, Event.start_time >= now)
    ).scalars().all()
    hosted_ids = [event.id for event in future_events if event.host_id == user_id]
    attended_ids = [event.id for event in future_events if event.host_id != user_id]

    with atomic(db):
        event_repo.delete_events(db, hosted_ids)
        event_repo.remove_attendee_from_events(db, attended_ids, user_id)
        db.execute(
            delete(ClubJoin).where(ClubJoin.club_id == club_id, ClubJoin.user_id == user_id)
        )


def delete_club_with_events(db: Session, club: Club, now: datetime) -> None:
    events = event_repo.list_club_events(db, club.id)
    upcoming_ids = [event.id for event in events if event.start_time >= now]
    started_ids = [event.id for event in events if event.start_time < now]

    with atomic(db):
        event_repo.delete_events(db, upcoming_ids)
        event_repo.archive_events(db, started_ids)
        db.execute(delete(ClubJoin).where(ClubJoin.club_id == club.id))
        db.delete(club)
