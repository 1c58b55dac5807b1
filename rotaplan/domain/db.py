"""Database initialization and utilities."""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from rotaplan.calendar import LOCALIZED_WEEKDAYS, WEEKDAYS

from .models import Base, Weekday

DEFAULT_DB_URL = "sqlite:///rotaplan.db"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(db_url: str = DEFAULT_DB_URL, echo: bool = False) -> Engine:
    """Create SQLAlchemy engine. SQLite connections enforce foreign keys."""
    engine = create_engine(db_url, echo=echo)
    if engine.dialect.name == "sqlite":
        event.listen(engine, "connect", _enable_sqlite_foreign_keys)
    return engine


def seed_weekdays(session: Session, locale: str = "es") -> int:
    """Insert the seven weekday rows if missing. Returns number inserted."""
    existing = {w.name for w in session.query(Weekday).all()}
    local_names = LOCALIZED_WEEKDAYS.get(locale)
    inserted = 0
    for order, name in enumerate(WEEKDAYS):
        if name in existing:
            continue
        session.add(
            Weekday(
                id=order + 1,
                name=name,
                local_name=local_names[order] if local_names else None,
                display_order=order,
            )
        )
        inserted += 1
    session.commit()
    return inserted


def init_schema(engine: Engine) -> None:
    """Create all tables and the weekday reference rows on an engine."""
    Base.metadata.create_all(engine)
    with Session(engine) as session:
        seed_weekdays(session)


def init_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Initialize database and create all tables."""
    init_schema(create_db_engine(db_url))
    print(f"[INFO] Database initialized: {db_url}")


def get_session_factory(db_url: str = DEFAULT_DB_URL) -> sessionmaker:
    """Get a session factory for the database."""
    engine = create_db_engine(db_url)
    return sessionmaker(bind=engine)


def get_session(db_url: str = DEFAULT_DB_URL) -> Session:
    """Get a new database session."""
    SessionFactory = get_session_factory(db_url)
    return SessionFactory()


def reset_database(db_url: str = DEFAULT_DB_URL) -> None:
    """Drop all tables and recreate (WARNING: deletes all data!)."""
    engine = create_db_engine(db_url)
    Base.metadata.drop_all(engine)
    init_schema(engine)
    print(f"[WARN] Database reset: {db_url}")
