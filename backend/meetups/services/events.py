import logging
from typing import Optional

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from ..models import Event, User
from ..repositories import clubs as club_repo
from ..repositories import events as event_repo
from ..repositories import users as user_repo
from ..schemas import EventCreate, EventListQuery, EventOut, EventUpdate
from ..time_utils import utcnow

logger = logging.getLogger(__name__)


def _serialize_event(event: Event, city_ids: list[int]) -> EventOut:
    return EventOut(
        id=event.id,
        title=event.title,
        description=event.description,
        host_id=event.host_id,
        category_id=event.category_id,
        city_ids=city_ids,
        start_time=event.start_time,
        end_time=event.end_time,
        max_people=event.max_people,
        club_id=event.club_id,
        archived=event.archived,
    )


def _event_out(db: Session, event: Event) -> EventOut:
    return _serialize_event(event, event_repo.get_city_ids(db, [event.id])[event.id])


def _get_event_or_404(db: Session, event_id: int) -> Event:
    event = event_repo.get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Event not found")
    return event


def _get_user_or_404(db: Session, user_id: int) -> User:
    user = user_repo.get_active_user(db, user_id)
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def can_view_event(
    event: Event,
    member_club_ids: set[int],
    joined_event_ids: set[int],
) -> bool:
    """Visibility rule shared by events and their reviews.

    Club events are limited to club members. Archived events (whose club
    may be gone) are limited to the people who attended them.
    """
    if event.club_id is not None and event.club_id not in member_club_ids:
        return False
    if event.archived and event.id not in joined_event_ids:
        return False
    return True


def visibility_context(db: Session, user_id: int) -> tuple[set[int], set[int]]:
    return club_repo.get_member_club_ids(db, user_id), event_repo.get_joined_event_ids(db, user_id)


def _check_cities(db: Session, city_ids: list[int]) -> None:
    if not event_repo.cities_exist(db, city_ids):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="City not found")


def _check_category(db: Session, category_id: int) -> None:
    if not event_repo.category_exists(db, category_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")


def _check_schedule(start_time, end_time) -> None:
    if start_time < utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event must start in the future",
        )
    if start_time >= end_time:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event must end after it starts",
        )


def create_event(db: Session, payload: EventCreate, host_id: int) -> EventOut:
    _check_category(db, payload.category_id)
    _check_cities(db, payload.city_ids)
    _check_schedule(payload.start_time, payload.end_time)
    _get_user_or_404(db, host_id)

    if payload.club_id is not None:
        if not club_repo.get_club(db, payload.club_id):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Club not found")
        if not club_repo.is_club_member(db, payload.club_id, host_id):
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail="Only club members can host club events",
            )

    event = event_repo.create_event(db, payload, host_id)
    event_repo.add_attendee(db, event.id, host_id)
    logger.info("Event %s created by user %s (club=%s)", event.id, host_id, event.club_id)
    return _event_out(db, event)


def get_event(db: Session, event_id: int, user: User) -> EventOut:
    event = _get_event_or_404(db, event_id)
    member_club_ids, joined_event_ids = visibility_context(db, user.id)
    if not can_view_event(event, member_club_ids, joined_event_ids):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="You do not have access to this event",
        )
    return _event_out(db, event)


def list_events(db: Session, query: EventListQuery, user: User) -> list[EventOut]:
    events = event_repo.list_events(db, query)
    member_club_ids, joined_event_ids = visibility_context(db, user.id)
    visible = [e for e in events if can_view_event(e, member_club_ids, joined_event_ids)]
    city_ids = event_repo.get_city_ids(db, [e.id for e in visible])
    return [_serialize_event(e, city_ids[e.id]) for e in visible]


def join_event(db: Session, event_id: int, user_id: int) -> None:
    _get_user_or_404(db, user_id)
    event = _get_event_or_404(db, event_id)

    if event.start_time < utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event has already started",
        )
    if event_repo.is_user_joined(db, event_id, user_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Already joined this event")
    if event_repo.count_attendees(db, event_id) >= event.max_people:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Event is full")
    if event.club_id is not None and not club_repo.is_club_member(db, event.club_id, user_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Only club members can join this event",
        )

    event_repo.add_attendee(db, event_id, user_id)
    logger.info("User %s joined event %s", user_id, event_id)


def leave_event(db: Session, event_id: int, user_id: int) -> None:
    _get_user_or_404(db, user_id)
    event = _get_event_or_404(db, event_id)

    if event.start_time < utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event has already started",
        )
    if not event_repo.is_user_joined(db, event_id, user_id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Not joined to this event")
    if event.host_id == user_id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="The host cannot leave their own event",
        )

    event_repo.remove_attendee(db, event_id, user_id)
    logger.info("User %s left event %s", user_id, event_id)


def _ensure_host(event: Event, user: User, action: str) -> None:
    if event.host_id != user.id:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Only the host can {action} this event",
        )


def update_event(db: Session, event_id: int, payload: EventUpdate, user: User) -> EventOut:
    event = _get_event_or_404(db, event_id)
    _ensure_host(event, user, "update")
    if event.start_time < utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event has already started",
        )

    fields = payload.model_dump(exclude_unset=True)
    for name, value in fields.items():
        if value is None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"{name} cannot be null",
            )

    if "category_id" in fields:
        _check_category(db, fields["category_id"])
    city_ids: Optional[list[int]] = fields.pop("city_ids", None)
    if city_ids is not None:
        _check_cities(db, city_ids)

    if "start_time" in fields or "end_time" in fields:
        _check_schedule(
            fields.get("start_time", event.start_time),
            fields.get("end_time", event.end_time),
        )

    max_people = fields.get("max_people")
    if max_people is not None and max_people < event_repo.count_attendees(db, event_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="max_people cannot be lower than the current attendee count",
        )

    if city_ids is not None:
        event_repo.replace_cities(db, event_id, city_ids)
    event = event_repo.update_event(db, event, fields)
    logger.info("Event %s updated by user %s", event_id, user.id)
    return _event_out(db, event)


def delete_event(db: Session, event_id: int, user: User) -> None:
    event = _get_event_or_404(db, event_id)
    _ensure_host(event, user, "delete")
    if event.start_time < utcnow():
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Event has already started",
        )

    event_repo.delete_events(db, [event_id])
    logger.info("Event %s deleted by user %s", event_id, user.id)
