"""Database engine and session management."""

from collections.abc import Generator, Iterator
from contextlib import contextmanager

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from stockaudit.core.config import settings
from stockaudit.core.errors import ConflictError

connect_args: dict[str, bool] = {"check_same_thread": False} if settings.database_url.startswith("sqlite") else {}
engine = create_engine(settings.database_url, connect_args=connect_args)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db() -> Generator[Session, None, None]:
    """Yield a database session and ensure proper cleanup."""
    db: Session = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def unit_of_work(db: Session) -> Iterator[Session]:
    """Commit everything written inside the block, or nothing at all."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


@contextmanager
def versioned_unit_of_work(db: Session, conflict_message: str, **context: object) -> Iterator[Session]:
    """Unit of work over version-checked rows; a stale write becomes a ConflictError."""
    try:
        with unit_of_work(db):
            yield db
    except StaleDataError as exc:
        raise ConflictError(conflict_message, **context) from exc
