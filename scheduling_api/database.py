# scheduling_api/database.py
from __future__ import annotations
import logging
import time

from sqlalchemy import create_engine
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker, declarative_base
from .config import settings

logger = logging.getLogger(__name__)

DATABASE_URL: str | None = settings.DATABASE_URL
if not DATABASE_URL:
    raise RuntimeError("DATABASE_URL is not configured (check your .env).")

if DATABASE_URL.startswith("sqlite"):
    # Local SQLite file
    engine = create_engine(
        DATABASE_URL,
        connect_args={"check_same_thread": False},  # request handlers run on several threads
        pool_pre_ping=True,
        future=True,
    )
else:
    # Postgres or other server databases
    engine = create_engine(
        DATABASE_URL,
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
        pool_pre_ping=True,
        future=True,
    )

SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
    future=True,
)

Base = declarative_base()


def init_db(retries: int | None = None, backoff: float | None = None) -> None:
    """
    Create the tables if they do not exist. Models are imported first so
    SQLAlchemy knows every table.

    Connection failures are retried with exponential backoff; once the last
    attempt fails the error is re-raised so the app never starts against a
    broken database.
    """
    from . import models  # noqa: F401

    retries = settings.DB_INIT_RETRIES if retries is None else retries
    backoff = settings.DB_INIT_BACKOFF_SECONDS if backoff is None else backoff

    attempt = 0
    while True:
        try:
            Base.metadata.create_all(bind=engine)
            logger.info("Database schema ready (attempt %d)", attempt + 1)
            return
        except OperationalError as e:
            attempt += 1
            if attempt > retries:
                logger.error("Database initialisation failed after %d attempts: %s", attempt, e)
                raise
            wait = backoff ** attempt
            logger.warning(
                "Database not reachable (attempt %d/%d): %s. Retrying in %.1fs",
                attempt, retries, e, wait,
            )
            time.sleep(wait)
