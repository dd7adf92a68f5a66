import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker

# Load .env at repo root
load_dotenv(dotenv_path=os.path.join(os.path.dirname(os.path.dirname(__file__)), "..", ".env"))

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./meetups.db")

class Base(DeclarativeBase):
    pass

def _engine():
    # For SQLite in FastAPI, allow cross-thread access
    if DATABASE_URL.startswith("sqlite"):
        return create_engine(DATABASE_URL, echo=False, pool_pre_ping=True, connect_args={"check_same_thread": False})
    return create_engine(DATABASE_URL, echo=False, pool_pre_ping=True)

engine = _engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)

@contextmanager
def get_session():
    session = SessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


@contextmanager
def atomic(session: Session):
    """Group several statements so they land together or not at all.

    The request session is committed once by ``get_session``; a failure
    inside the block rolls back everything issued on the session so far.
    """
    try:
        yield session
        session.flush()
    except Exception:
        session.rollback()
        raise
