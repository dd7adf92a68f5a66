import logging
import os
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.orm import Session

from .api import auth, clubs, events, reviews, users
from .db import Base, engine, get_session
from .models import Category, City

# Load .env
load_dotenv()

logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

DEFAULT_CATEGORIES = ["sports", "study", "culture", "food", "travel", "tech"]
DEFAULT_CITIES = ["Seoul", "Busan", "Incheon", "Daegu", "Daejeon", "Gwangju"]


@asynccontextmanager
async def lifespan(app: FastAPI):
    startup()
    yield


app = FastAPI(title="Meetups: clubs, events and reviews (FastAPI + SQLAlchemy)", lifespan=lifespan)

# CORS for localhost frontend
CORS_ORIGIN = os.getenv("CORS_ORIGIN", "http://localhost:3000")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[CORS_ORIGIN],
    allow_methods=["*"],
    allow_headers=["*"]
)

app.include_router(auth.router)
app.include_router(users.router)
app.include_router(clubs.router)
app.include_router(events.router)
app.include_router(reviews.router)


def startup() -> None:
    Base.metadata.create_all(engine)
    with get_session() as session:
        seed_data(session)
    logger.info("Database ready at %s", engine.url.render_as_string(hide_password=True))


def seed_data(session: Session) -> None:
    existing_categories = set(session.execute(select(Category.name)).scalars().all())
    for name in DEFAULT_CATEGORIES:
        if name not in existing_categories:
            session.add(Category(name=name))

    existing_cities = set(session.execute(select(City.name)).scalars().all())
    for name in DEFAULT_CITIES:
        if name not in existing_cities:
            session.add(City(name=name))
    session.flush()


@app.get("/api/health")
def health_check():
    return {"status": "healthy"}
