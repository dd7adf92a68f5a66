import os
from datetime import datetime, timedelta

# Point the app at a throwaway database before anything imports it
os.environ["DATABASE_URL"] = "sqlite:///./test_meetups.db"
os.environ["JWT_SECRET_KEY"] = "test-secret-key"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import select

from meetups import models
from meetups.auth_utils import create_access_token, hash_password
from meetups.db import Base, SessionLocal, engine
from meetups.main import app, seed_data
from meetups.time_utils import utcnow


@pytest.fixture(autouse=True)
def setup_test_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    with SessionLocal() as session:
        seed_data(session)
        session.commit()
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture()
def client():
    with TestClient(app) as c:
        yield c


@pytest.fixture()
def headers_for():
    def _headers(user_id: int) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def category_id() -> int:
    with SessionLocal() as session:
        return session.execute(select(models.Category.id).order_by(models.Category.id)).scalars().first()


@pytest.fixture()
def city_ids() -> list[int]:
    with SessionLocal() as session:
        return list(
            session.execute(select(models.City.id).order_by(models.City.id)).scalars().all()
        )


@pytest.fixture()
def make_user():
    counter = {"n": 0}

    def _make(name: str | None = None, password: str = "password123") -> int:
        counter["n"] += 1
        name = name or f"user{counter['n']}"
        with SessionLocal() as session:
            user = models.User(
                name=name,
                email=f"{name}@example.com",
                password_hash=hash_password(password),
            )
            session.add(user)
            session.commit()
            return user.id

    return _make


@pytest.fixture()
def make_club():
    def _make(
        leader_id: int,
        member_ids: list[int] | None = None,
        max_people: int = 10,
        applicant_ids: list[int] | None = None,
    ) -> int:
        with SessionLocal() as session:
            club = models.Club(
                title="Hiking Club",
                description="Weekend trails",
                leader_id=leader_id,
                max_people=max_people,
            )
            session.add(club)
            session.flush()
            members = set(member_ids or []) | {leader_id}
            for user_id in members:
                session.add(
                    models.ClubJoin(
                        club_id=club.id,
                        user_id=user_id,
                        status=models.ClubJoinStatus.MEMBER,
                    )
                )
            for user_id in applicant_ids or []:
                session.add(
                    models.ClubJoin(
                        club_id=club.id,
                        user_id=user_id,
                        status=models.ClubJoinStatus.APPLICANT,
                    )
                )
            session.commit()
            return club.id

    return _make


@pytest.fixture()
def make_event(category_id, city_ids):
    def _make(
        host_id: int,
        club_id: int | None = None,
        start_time: datetime | None = None,
        end_time: datetime | None = None,
        max_people: int = 10,
        attendee_ids: list[int] | None = None,
        archived: bool = False,
    ) -> int:
        start_time = start_time or utcnow() + timedelta(days=1)
        end_time = end_time or start_time + timedelta(hours=2)
        with SessionLocal() as session:
            event = models.Event(
                host_id=host_id,
                club_id=club_id,
                title="Evening run",
                description="5k along the river",
                category_id=category_id,
                start_time=start_time,
                end_time=end_time,
                max_people=max_people,
                archived=archived,
            )
            session.add(event)
            session.flush()
            session.add(models.EventCity(event_id=event.id, city_id=city_ids[0]))
            for user_id in {host_id, *(attendee_ids or [])}:
                session.add(models.EventJoin(event_id=event.id, user_id=user_id))
            session.commit()
            return event.id

    return _make
