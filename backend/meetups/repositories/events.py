from collections import defaultdict
from typing import Any, Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..models import Category, City, Event, EventCity, EventJoin, User
from ..schemas import EventCreate, EventListQuery
from .users import is_active


def category_exists(db: Session, category_id: int) -> bool:
    return db.get(Category, category_id) is not None


def cities_exist(db: Session, city_ids: Iterable[int]) -> bool:
    ids = set(city_ids)
    if not ids:
        return False
    found = db.execute(select(func.count(City.id)).where(City.id.in_(ids))).scalar() or 0
    return found == len(ids)


def list_categories(db: Session) -> list[Category]:
    return list(db.execute(select(Category).order_by(Category.id.asc())).scalars().all())


def list_cities(db: Session) -> list[City]:
    return list(db.execute(select(City).order_by(City.id.asc())).scalars().all())


def get_event(db: Session, event_id: int) -> Event | None:
    return db.get(Event, event_id)


def get_events_by_ids(db: Session, event_ids: Iterable[int]) -> dict[int, Event]:
    ids = set(event_ids)
    if not ids:
        return {}
    events = db.execute(select(Event).where(Event.id.in_(ids))).scalars().all()
    return {event.id: event for event in events}


def list_events(db: Session, query: EventListQuery) -> list[Event]:
    stmt = select(Event)
    if query.category_id is not None:
        stmt = stmt.where(Event.category_id == query.category_id)
    if query.host_id is not None:
        stmt = stmt.where(Event.host_id == query.host_id)
    if query.club_id is not None:
        stmt = stmt.where(Event.club_id == query.club_id)
    if query.city_id is not None:
        stmt = stmt.where(
            Event.id.in_(select(EventCity.event_id).where(EventCity.city_id == query.city_id))
        )
    return list(db.execute(stmt.order_by(Event.start_time.asc(), Event.id.asc())).scalars().all())


def list_club_events(db: Session, club_id: int) -> list[Event]:
    return list(db.execute(select(Event).where(Event.club_id == club_id)).scalars().all())


def get_city_ids(db: Session, event_ids: Iterable[int]) -> dict[int, list[int]]:
    ids = set(event_ids)
    city_ids: dict[int, list[int]] = defaultdict(list)
    if not ids:
        return city_ids
    rows = db.execute(
        select(EventCity.event_id, EventCity.city_id)
        .where(EventCity.event_id.in_(ids))
        .order_by(EventCity.city_id.asc())
    ).all()
    for event_id, city_id in rows:
        city_ids[event_id].append(city_id)
    return city_ids


def create_event(db: Session, payload: EventCreate, host_id: int) -> Event:
    event = Event(
        host_id=host_id,
        club_id=payload.club_id,
        title=payload.title,
        description=payload.description,
        category_id=payload.category_id,
        start_time=payload.start_time,
        end_time=payload.end_time,
        max_people=payload.max_people,
    )
    db.add(event)
    db.flush()
    db.add_all(EventCity(event_id=event.id, city_id=city_id) for city_id in sorted(set(payload.city_ids)))
    db.flush()
    db.refresh(event)
    return event


def replace_cities(db: Session, event_id: int, city_ids: Iterable[int]) -> None:
    db.execute(delete(EventCity).where(EventCity.event_id == event_id))
    db.add_all(EventCity(event_id=event_id, city_id=city_id) for city_id in sorted(set(city_ids)))
    db.flush()


def update_event(db: Session, event: Event, fields: dict[str, Any]) -> Event:
    for name, value in fields.items():
        setattr(event, name, value)
    db.flush()
    db.refresh(event)
    return event


def delete_events(db: Session, event_ids: Iterable[int]) -> None:
    """Remove events together with their city and attendance rows."""
    ids = list(set(event_ids))
    if not ids:
        return
    db.execute(delete(EventCity).where(EventCity.event_id.in_(ids)))
    db.execute(delete(EventJoin).where(EventJoin.event_id.in_(ids)))
    db.execute(delete(Event).where(Event.id.in_(ids)))


def count_attendees(db: Session, event_id: int) -> int:
    return db.execute(
        select(func.count(EventJoin.id))
        .join(User, User.id == EventJoin.user_id)
        .where(EventJoin.event_id == event_id, is_active())
    ).scalar() or 0


def is_user_joined(db: Session, event_id: int, user_id: int) -> bool:
    join = db.execute(
        select(EventJoin.id)
        .join(User, User.id == EventJoin.user_id)
        .where(EventJoin.event_id == event_id, EventJoin.user_id == user_id, is_active())
    ).first()
    return join is not None


def get_joined_event_ids(db: Session, user_id: int) -> set[int]:
    rows = db.execute(
        select(EventJoin.event_id)
        .join(User, User.id == EventJoin.user_id)
        .where(EventJoin.user_id == user_id, is_active())
    ).scalars().all()
    return set(rows)


def add_attendee(db: Session, event_id: int, user_id: int) -> None:
    db.add(EventJoin(event_id=event_id, user_id=user_id))
    db.flush()


def remove_attendee(db: Session, event_id: int, user_id: int) -> None:
    db.execute(
        delete(EventJoin).where(EventJoin.event_id == event_id, EventJoin.user_id == user_id)
    )


def remove_attendee_from_events(db: Session, event_ids: Iterable[int], user_id: int) -> None:
    ids = list(set(event_ids))
    if not ids:
        return
    db.execute(
        delete(EventJoin).where(EventJoin.event_id.in_(ids), EventJoin.user_id == user_id)
    )


def archive_events(db: Session, event_ids: Iterable[int]) -> None:
    ids = list(set(event_ids))
    if not ids:
        return
    # club_id is cleared so the club row can be removed
    for event in db.execute(select(Event).where(Event.id.in_(ids))).scalars().all():
        event.archived = True
        event.club_id = None
    db.flush()
