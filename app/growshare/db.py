from __future__ import annotations

import logging
from contextlib import contextmanager
from collections.abc import Callable, Generator
from typing import TypeVar

from flask import Flask, current_app, g, has_app_context
from sqlalchemy import create_engine, event, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

logger = logging.getLogger(__name__)

T = TypeVar("T")


def init_db(app: Flask) -> None:
    db_url = app.config["DATABASE_URL"]
    is_postgres = db_url.startswith("postgres")
    engine_kwargs: dict[str, object] = {
        "future": True,
        "pool_pre_ping": True,
    }
    if is_postgres:
        engine_kwargs.update(
            {
                "pool_recycle": 1800,
                "pool_size": 5,
                "max_overflow": 10,
                "pool_timeout": 30,
            }
        )
    engine = create_engine(db_url, **engine_kwargs)
    if app.config.get("ENV") != "production":
        @event.listens_for(engine, "checkout")
        def _receive_checkout(dbapi_connection, connection_record, connection_proxy):  # type: ignore[no-redef]
            app.logger.debug("DB connection checkout from pool")
    app.extensions["sqlalchemy_engine"] = engine
    app.extensions["sqlalchemy_sessionmaker"] = sessionmaker(
        bind=engine,
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
        future=True,
    )


def db_session(app: Flask | None = None) -> Session:
    """
    Request-scoped session. Use inside request handlers.
    """
    if hasattr(g, "db_session") and g.db_session is not None:
        return g.db_session
    if app is None:
        app = current_app
    sm = app.extensions["sqlalchemy_sessionmaker"]
    g.db_session = sm()  # type: ignore[assignment]
    return g.db_session


def teardown_db_session(_exc: BaseException | None) -> None:
    s: Session | None = getattr(g, "db_session", None)
    if s is not None:
        try:
            s.close()
        except SQLAlchemyError:
            logger.warning("Failed to close request DB session", exc_info=True)
        g.db_session = None


@contextmanager
def session_scope(app: Flask) -> Generator[Session, None, None]:
    """
    Non-request helper for scripts and tests: yields a session and commits/rolls back.
    """
    sm = app.extensions["sqlalchemy_sessionmaker"]
    s: Session = sm()
    try:
        yield s
        s.commit()
    except Exception:
        s.rollback()
        raise
    finally:
        s.close()


def check_db_connection() -> bool:
    """Return True when the database answers a trivial query."""
    try:
        s = db_session()
        s.execute(text("SELECT 1"))
        return True
    except SQLAlchemyError as e:
        current_app.logger.error("Database connection check failed: %s", e)
        return False


def secure_db_operation(operation: Callable[[], T]) -> tuple[T | None, SQLAlchemyError | None]:
    """
    Run a database operation and return (result, error) instead of raising.

    On failure the request session is rolled back so the handler can still
    answer with a generic error response.
    """
    try:
        return operation(), None
    except SQLAlchemyError as e:
        rid = getattr(g, "request_id", None) if has_app_context() else None
        logger.exception("Database operation failed (request_id=%s)", rid)
        s: Session | None = getattr(g, "db_session", None) if has_app_context() else None
        if s is not None:
            s.rollback()
        return None, e
