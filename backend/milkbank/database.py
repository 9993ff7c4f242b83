"""Engine and session factory backing the milk bank persistence layer."""

import os

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./milkbank.db")


def build_engine(url: str):
    """Create an engine, enabling foreign key checks on SQLite."""

    connect_args = {"check_same_thread": False, "timeout": 30} if url.startswith("sqlite") else {}
    bind = create_engine(url, connect_args=connect_args)
    if url.startswith("sqlite"):

        @event.listens_for(bind, "connect")
        def _enable_foreign_keys(dbapi_connection, _record):
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return bind


engine = build_engine(DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
