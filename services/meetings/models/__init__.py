from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict, Generator, Optional

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from services.meetings.models.base import Base as Base
from services.meetings.models.meeting import Meeting as Meeting
from services.meetings.models.meeting import MeetingParticipant as MeetingParticipant
from services.meetings.models.meeting import MeetingStatus as MeetingStatus
from services.meetings.models.meeting import MeetingType as MeetingType
from services.meetings.models.meeting import ParticipantKind as ParticipantKind
from services.meetings.models.meeting import ParticipantRole as ParticipantRole
from services.meetings.models.meeting import ParticipantStatus as ParticipantStatus
from services.meetings.models.meeting import RecurrenceType as RecurrenceType
from services.meetings.models.user import User as User
from services.meetings.models.user import UserRole as UserRole
from services.meetings.settings import get_settings

# Global engine and session factory - created once and reused
_engine: Optional[Engine] = None
_session_maker: Optional[sessionmaker] = None

# Thread-safe initialization locks
_engine_lock = Lock()
_session_maker_lock = Lock()


def _engine_kwargs(db_url: str) -> Dict[str, Any]:
    if db_url.startswith("sqlite"):
        # SQLite connections are shared across the TestClient/threadpool threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        # Connection pool settings to prevent connection exhaustion
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 3600,
        "pool_pre_ping": True,
    }


def _create_engine() -> Engine:
    db_url = get_settings().db_url_meetings
    engine = create_engine(db_url, echo=False, future=True, **_engine_kwargs(db_url))
    if db_url.startswith("sqlite"):

        @event.listens_for(engine, "connect")
        def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):  # type: ignore[no-untyped-def]
            cursor = dbapi_connection.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.close()

    return engine


def get_engine() -> Engine:
    """Get or create the shared database engine in a thread-safe manner."""
    global _engine
    if _engine is None:
        with _engine_lock:
            # Double-check pattern to prevent race conditions
            if _engine is None:
                _engine = _create_engine()
    return _engine


def get_sessionmaker() -> sessionmaker:
    """Get or create the shared session maker in a thread-safe manner.

    Acquire locks in sessionmaker -> engine order to avoid races with reset/close.
    """
    global _session_maker, _engine
    if _session_maker is None:
        with _session_maker_lock:
            if _session_maker is None:
                with _engine_lock:
                    if _engine is None:
                        _engine = _create_engine()
                    current_engine = _engine
                _session_maker = sessionmaker(
                    bind=current_engine,
                    autoflush=False,
                    autocommit=False,
                    expire_on_commit=False,
                    future=True,
                )
    return _session_maker


@contextmanager
def get_session() -> Generator[Session, None, None]:
    Session = get_sessionmaker()
    session = Session()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def create_all_tables_for_testing() -> None:
    """Create all database tables. Production deployments manage schema separately."""
    Base.metadata.create_all(get_engine())


def close_db() -> None:
    """Dispose of the engine and forget the session factory."""
    global _engine, _session_maker
    engine_to_dispose: Optional[Engine] = None

    with _session_maker_lock:
        _session_maker = None
        with _engine_lock:
            if _engine is not None:
                engine_to_dispose = _engine
                _engine = None

    # Dispose outside of locks
    if engine_to_dispose is not None:
        engine_to_dispose.dispose()


def reset_db() -> None:
    """Reset database globals (useful for testing) without disposing the engine."""
    global _engine, _session_maker
    with _session_maker_lock:
        with _engine_lock:
            _session_maker = None
            _engine = None
