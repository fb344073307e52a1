from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session

from underwriting.core.config import DATABASE_URL
from underwriting.db.base import Base

# SQLite connections are shared across the request threadpool
connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(DATABASE_URL, pool_pre_ping=True, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    # importing models registers the tables on Base.metadata
    from underwriting.db import models  # noqa: F401
    Base.metadata.create_all(bind=bind or engine)


def get_db():
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()
