# storefront/database.py
import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import SQLModel, create_engine, Session

from storefront.core.config import get_settings
from storefront.core.errors import Conflict, StorageFailure, StorefrontError

settings = get_settings()

logger = logging.getLogger(__name__)

# ---------------------------------------------------------
# Postgres connection (via pooler)
#
# - sslmode=require   : enforce SSL when running in the cloud
# - pool_size=1       : keep only 1 connection to the pooler
# - max_overflow=0    : do not open extra connections beyond the pool
# - pool_pre_ping=True: validate connections before using them
#
# SQLite (local runs, seed script) only needs check_same_thread=False
# because FastAPI serves sync endpoints from a threadpool.
# ---------------------------------------------------------


def _engine_options(db_url: str) -> tuple[str, dict]:
    if db_url.startswith("sqlite"):
        return db_url, {"connect_args": {"check_same_thread": False}}

    # Append sslmode=require if it is not already present
    if "sslmode=" not in db_url:
        if "?" in db_url:
            db_url = db_url + "&sslmode=require"
        else:
            db_url = db_url + "?sslmode=require"

    return db_url, {"pool_pre_ping": True, "pool_size": 1, "max_overflow": 0}


db_url, engine_options = _engine_options(settings.DATABASE_URL)

engine = create_engine(
    db_url,
    echo=False,        # set to True if you want to debug SQL queries
    **engine_options,
)


def create_db_and_tables() -> None:
    """
    Create all tables defined in SQLModel metadata if they do not exist.

    This is called once on application startup.
    """
    SQLModel.metadata.create_all(engine)


def get_session():
    """
    FastAPI dependency that yields a SQLModel Session.

    Usage:

        from fastapi import Depends

        @router.get("/example")
        def example_endpoint(session: Session = Depends(get_session)):
            ...
    """
    with Session(engine) as session:
        yield session


@contextmanager
def transaction(session: Session, operation: str) -> Iterator[Session]:
    """
    Run a multi-step write as one unit and commit it.

    Repositories never commit; services wrap each write operation in this
    block so that every statement inside it lands together or not at all.

    On failure the session is rolled back and:
      - StorefrontError subclasses propagate unchanged
      - IntegrityError (unique/check constraint race) -> Conflict
      - any other SQLAlchemyError -> StorageFailure
    """
    try:
        yield session
        session.commit()
    except StorefrontError:
        session.rollback()
        raise
    except IntegrityError as exc:
        session.rollback()
        logger.warning("Constraint violation during %s: %s", operation, exc.orig)
        raise Conflict(
            f"Concurrent update detected during {operation}; retry the operation",
            operation=operation,
        ) from exc
    except SQLAlchemyError as exc:
        session.rollback()
        logger.exception("Storage failure during %s", operation)
        raise StorageFailure(operation) from exc
