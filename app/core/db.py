from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError
from sqlalchemy.pool import StaticPool

from app.core.config import settings
from app.core.errors import ConcurrentModificationError, IntegrityConflictError, StorageUnavailableError


def _enforce_sqlite_foreign_keys(dbapi_connection, connection_record):
    # SQLite ships with foreign keys off; PostgreSQL always enforces them
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def make_engine(url: str):
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        # a bare in-memory database only lives as long as its one connection
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        sqlite_engine = create_engine(url, future=True, **kwargs)
        event.listen(sqlite_engine, "connect", _enforce_sqlite_foreign_keys)
        return sqlite_engine
    return create_engine(url, future=True, pool_pre_ping=True, pool_recycle=3600)


engine = make_engine(settings.DATABASE_URL)

# Fresh Session per request; never share one across requests
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False, future=True)

Base = declarative_base()


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def commit_or_raise(db: Session, request_id: str | None = None) -> None:
    """
    Commit the unit of work, translating driver failures into dispatch errors.
    The session is rolled back before anything is raised.
    """
    try:
        db.commit()
    except StaleDataError as e:
        db.rollback()
        raise ConcurrentModificationError(
            f"Tow request {request_id} was modified concurrently" if request_id else "Record was modified concurrently",
            request_id=request_id,
        ) from e
    except IntegrityError as e:
        db.rollback()
        raise IntegrityConflictError(f"Conflicting write: {e.orig}", request_id=request_id) from e
    except DBAPIError as e:
        db.rollback()
        raise StorageUnavailableError(f"Storage unavailable: {e.orig}", request_id=request_id) from e
