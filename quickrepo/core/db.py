from __future__ import annotations

from contextlib import contextmanager
from typing import Any, Callable, Generator, TypeVar

from quickrepo.core.logging import get_logger
from quickrepo.core.settings import settings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

SessionT = TypeVar("SessionT", bound=Session)

_engine: Engine | None = None
_session_factory: sessionmaker[Session] | None = None

logger = get_logger("quickrepo.db")


def get_engine() -> Engine:
    global _engine
    if _engine is None:
        connect_args: dict[str, Any] = {}
        if settings.database_url.startswith("sqlite"):
            connect_args["check_same_thread"] = False
        _engine = create_engine(
            settings.database_url,
            connect_args=connect_args,
            pool_pre_ping=True,
        )
        logger.debug("Created engine for %s", _engine.url.render_as_string())
    return _engine


def _get_session_factory() -> sessionmaker[Session]:
    global _session_factory
    if _session_factory is None:
        _session_factory = sessionmaker(
            bind=get_engine(),
            autoflush=False,
            expire_on_commit=False,
        )
    return _session_factory


def get_session() -> Session:
    """Return a new SQLAlchemy session bound to the shared engine."""

    factory = _get_session_factory()
    return factory()


@contextmanager
def session_scope(
    session_factory: Callable[[], SessionT] | None = None,
    *,
    commit: bool = True,
) -> Generator[SessionT, None, None]:
    """Own one session for a unit of work.

    The session comes from ``session_factory`` (the shared one by default),
    is committed when ``commit`` is set and the block succeeds, rolled back
    when it raises, and always closed.
    """

    session = (session_factory or get_session)()
    try:
        yield session
        if commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def dispose_engine() -> None:
    global _engine, _session_factory
    if _engine is not None:
        _engine.dispose()
        _engine = None
    _session_factory = None
