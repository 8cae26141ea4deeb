import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy import create_engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from .config import Settings, get_settings
from .errors import ConflictError, LedgerError, StoreError

logger = logging.getLogger(__name__)

Base = declarative_base()


def build_engine(settings: Settings):
    connect_args: dict = {}
    if settings.database_url.startswith("sqlite"):
        connect_args["check_same_thread"] = False
    elif settings.database_ssl:
        connect_args["sslmode"] = "require"
    return create_engine(settings.database_url, connect_args=connect_args, pool_pre_ping=True)


engine = build_engine(get_settings())
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db() -> Iterator[Session]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


@contextmanager
def atomic(db: Session) -> Iterator[Session]:
    """Run a multi-step posting as one unit: commit on success, roll back on any exit by exception.

    Ledger errors propagate unchanged. Store failures surface as ``ConflictError``
    (integrity violations) or ``StoreError``.
    """
    try:
        yield db
        db.commit()
    except LedgerError:
        db.rollback()
        logger.warning("Rolled back ledger transaction", exc_info=True)
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("Rolled back ledger transaction on integrity error: %s", exc.orig)
        raise ConflictError(f"Conflicting ledger write: {exc.orig}") from exc
    except SQLAlchemyError as exc:
        db.rollback()
        logger.error("Rolled back ledger transaction on store failure: %s", exc)
        raise StoreError(f"Store failure: {exc}") from exc
    except BaseException:
        db.rollback()
        logger.warning("Rolled back ledger transaction on interruption", exc_info=True)
        raise
