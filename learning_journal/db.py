# db.py
import logging
import os
from contextlib import contextmanager

from dotenv import load_dotenv
from sqlalchemy import create_engine, event
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import sessionmaker, declarative_base
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_incrementing,
)

load_dotenv()

log = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not set in .env")

DB_RETRY_ATTEMPTS = int(os.getenv("DB_RETRY_ATTEMPTS", "3"))
DB_RETRY_DELAY = float(os.getenv("DB_RETRY_DELAY", "1"))

if DATABASE_URL.startswith("sqlite"):
    engine = create_engine(DATABASE_URL, connect_args={"check_same_thread": False})

    # SQLite ignores foreign keys (and ON DELETE CASCADE) unless asked per connection
    @event.listens_for(engine, "connect")
    def _enable_sqlite_fks(dbapi_conn, _record):
        cur = dbapi_conn.cursor()
        cur.execute("PRAGMA foreign_keys=ON")
        cur.close()
else:
    engine = create_engine(DATABASE_URL, pool_pre_ping=True, pool_recycle=3600)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()


@contextmanager
def get_session():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_db():
    """FastAPI dependency: one session per request, closed afterwards."""
    with get_session() as db:
        yield db


@contextmanager
def transaction(db):
    """Commit everything written inside the block, or roll all of it back."""
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise


def with_db_retry(fn):
    """
    Retry a persistence call on transient database errors.

    Attempts and base delay come from DB_RETRY_ATTEMPTS / DB_RETRY_DELAY;
    the n-th wait is n * DB_RETRY_DELAY seconds. The last error is re-raised.
    """
    return retry(
        reraise=True,
        stop=stop_after_attempt(DB_RETRY_ATTEMPTS),
        wait=wait_incrementing(start=DB_RETRY_DELAY, increment=DB_RETRY_DELAY),
        retry=retry_if_exception_type(DBAPIError),
        before_sleep=before_sleep_log(log, logging.WARNING),
    )(fn)
