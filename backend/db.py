"""
Database utilities and engine initialization.
"""
import os
from typing import Generator

from sqlmodel import create_engine, SQLModel, Session

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///data/listings.db")

# check_same_thread is SQLite-only
_connect_args = {"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}

engine = create_engine(
    DATABASE_URL,
    connect_args=_connect_args,
    echo=False  # Set to True for SQL debugging
)


def create_db_and_tables():
    """Create database and all tables"""
    if DATABASE_URL.startswith("sqlite:///") and not DATABASE_URL.startswith("sqlite:///:memory:"):
        directory = os.path.dirname(DATABASE_URL[len("sqlite:///"):])
        if directory:
            os.makedirs(directory, exist_ok=True)

    import models  # noqa: F401  (registers tables on SQLModel.metadata)
    SQLModel.metadata.create_all(engine)


def get_session() -> Generator[Session, None, None]:
    """Get database session"""
    with Session(engine) as session:
        yield session
