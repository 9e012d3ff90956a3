"""Database configuration and session management."""

from contextlib import contextmanager
from datetime import UTC, datetime

from sqlalchemy import DateTime, create_engine, event, text
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool
from sqlalchemy.types import TypeDecorator
from sqlmodel import SQLModel

from pingcron.core.config import settings

_engine = None
_session_maker = None


class UTCDateTime(TypeDecorator):
    """Timezone-aware datetime that always round-trips as UTC.

    SQLite drops tzinfo on storage, so naive values read back are
    re-tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect) -> datetime | None:
        if value is None:
            return None
        if value.tzinfo is None:
            return value.replace(tzinfo=UTC)
        return value.astimezone(UTC)


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine():
    """Get or create the engine."""
    global _engine, _session_maker

    if _engine is None:
        database_url = settings.database_url
        is_sqlite = database_url.startswith("sqlite")

        engine_kwargs = {}
        if settings.env == "test":
            engine_kwargs["poolclass"] = NullPool
        if is_sqlite:
            # Tick workers share the engine across threads
            engine_kwargs["connect_args"] = {"check_same_thread": False, "timeout": 30}

        _engine = create_engine(
            database_url,
            echo=False,
            pool_pre_ping=True,
            **engine_kwargs,
        )

        if is_sqlite:
            event.listen(_engine, "connect", _enable_sqlite_foreign_keys)

        _session_maker = sessionmaker(
            bind=_engine,
            class_=Session,
            expire_on_commit=False,
            autocommit=False,
            autoflush=False,
        )

    return _engine


@contextmanager
def get_session():
    """Get database session."""
    get_engine()  # Ensure engine is initialized

    with _session_maker() as session:
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()


def create_tables() -> None:
    """Create all database tables."""
    import pingcron.models  # noqa: F401  registers tables on the metadata

    engine = get_engine()
    SQLModel.metadata.create_all(engine)


def clean_database() -> None:
    """Clean all tables before each test."""
    engine = get_engine()
    tables = list(reversed(SQLModel.metadata.sorted_tables))
    if not tables:
        return

    with get_session() as session:
        if engine.dialect.name == "postgresql":
            table_names = [f'"{table.name}"' for table in tables]
            truncate_stmt = (
                "TRUNCATE " + ", ".join(table_names) + " RESTART IDENTITY CASCADE"
            )
            session.execute(text(truncate_stmt))
        else:
            for table in tables:
                session.execute(table.delete())


def close_db() -> None:
    """Close database connections."""
    global _engine, _session_maker

    if _engine:
        _engine.dispose()
        _engine = None
        _session_maker = None
