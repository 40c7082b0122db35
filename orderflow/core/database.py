import logging
from collections.abc import Generator, Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, OperationalError
from sqlalchemy.orm import Session, declarative_base, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from orderflow.core.config import settings
from orderflow.core.errors import LedgerError, StorageConflict

logger = logging.getLogger(__name__)

engine = create_engine(
    settings.APP_DATABASE_DSN,
    connect_args=({"check_same_thread": False} if "sqlite" in settings.APP_DATABASE_DSN else {}),
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base: Any = declarative_base()


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def init_db() -> None:
    """Initialize database tables."""
    Base.metadata.create_all(bind=engine)


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything done inside the block, or nothing.

    Optimistic-lock failures, lock timeouts and unique-key races surface as
    ``StorageConflict`` so callers can retry.
    """
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        raise
    except (StaleDataError, OperationalError, IntegrityError) as exc:
        db.rollback()
        logger.warning("Storage conflict, transaction rolled back: %s", exc)
        raise StorageConflict("Concurrent update detected, retry the operation") from exc
    except Exception:
        db.rollback()
        raise
