"""
Database engine and session factory for StudyQuiz.

Request handlers get a session through `get_db`. Generation workers and
the stale-quiz sweep run outside a request and open their own
`SessionLocal()`.
"""

import os
import time
import logging
from typing import Any, Dict

from sqlalchemy import create_engine, event
from sqlalchemy.orm import declarative_base, sessionmaker

query_logger = logging.getLogger("studyquiz.db")

# Queries slower than this are logged at WARNING
SLOW_QUERY_THRESHOLD_MS = int(os.getenv("SLOW_QUERY_THRESHOLD_MS", "100"))

DEFAULT_DATABASE_URL = "sqlite:///./studyquiz.db"


def normalize_database_url(url: str) -> str:
    """Hosted Postgres providers hand out postgres:// URLs, SQLAlchemy wants postgresql://"""
    if url.startswith("postgres://"):
        return "postgresql://" + url[len("postgres://"):]
    return url


def engine_options(url: str) -> Dict[str, Any]:
    options: Dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        # Sessions are opened from generation worker threads too
        options["connect_args"] = {"check_same_thread": False}
    else:
        options.update(pool_recycle=1800, pool_size=5, max_overflow=10, pool_timeout=30)
    return options


def _shorten(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


def install_slow_query_logging(target) -> None:
    @event.listens_for(target, "before_cursor_execute")
    def _start_timer(conn, cursor, statement, parameters, context, executemany):
        conn.info.setdefault("query_started", []).append(time.perf_counter())

    @event.listens_for(target, "after_cursor_execute")
    def _log_if_slow(conn, cursor, statement, parameters, context, executemany):
        started = conn.info.get("query_started")
        if not started:
            return
        elapsed_ms = (time.perf_counter() - started.pop()) * 1000
        if elapsed_ms > SLOW_QUERY_THRESHOLD_MS:
            query_logger.warning(
                "Slow query (%.1fms): %s | params=%s",
                elapsed_ms, _shorten(statement, 500), _shorten(str(parameters), 200)
            )


DATABASE_URL = normalize_database_url(os.getenv("DATABASE_URL", DEFAULT_DATABASE_URL))

engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))
install_slow_query_logging(engine)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db():
    """FastAPI dependency: one session per request"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
