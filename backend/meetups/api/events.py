from fastapi import APIRouter, Depends, Response, status
from sqlalchemy.orm import Session

from ..deps import get_db, get_user
from ..models import User
from ..repositories import events as event_repo
from ..schemas import CategoryOut, CityOut, EventCreate, EventListQuery, EventOut, EventUpdate
from ..services import events as event_service

router = APIRouter()


@router.post("/api/events", response_model=EventOut)
def create_event(
    payload: EventCreate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return event_service.create_event(db, payload, host_id=user.id)


@router.get("/api/events", response_model=list[EventOut])
def list_events(
    category_id: int | None = None,
    city_id: int | None = None,
    host_id: int | None = None,
    club_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    query = EventListQuery(
        category_id=category_id,
        city_id=city_id,
        host_id=host_id,
        club_id=club_id,
    )
    return event_service.list_events(db, query, user)


@router.get("/api/events/{event_id}", response_model=EventOut)
def get_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return event_service.get_event(db, event_id, user)


@router.post("/api/events/{event_id}/join", status_code=status.HTTP_204_NO_CONTENT)
def join_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    event_service.join_event(db, event_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/api/events/{event_id}/leave", status_code=status.HTTP_204_NO_CONTENT)
def leave_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    event_service.leave_event(db, event_id, user.id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/api/events/{event_id}", response_model=EventOut)
def update_event(
    event_id: int,
    payload: EventUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    return event_service.update_event(db, event_id, payload, user)


@router.delete("/api/events/{event_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_event(
    event_id: int,
    db: Session = Depends(get_db),
    user: User = Depends(get_user),
):
    event_service.delete_event(db, event_id, user)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/api/categories", response_model=list[CategoryOut])
def list_categories(db: Session = Depends(get_db)):
    return event_repo.list_categories(db)


@router.get("/api/cities", response_model=list[CityOut])
def list_cities(db: Session = Depends(get_db)):
    return event_repo.list_cities(db)
