from __future__ import annotations

# ruff: noqa: E402
import sys
from pathlib import Path
from typing import Callable

PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

import pytest
from quickrepo.core.db import dispose_engine
from quickrepo.core.settings import settings
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from tests.utils.models import Author, AuthorRepository, Base, BookRepository


class TrackingSession(Session):
    """Session that remembers whether it has been closed."""

    closed = False

    def close(self) -> None:
        super().close()
        self.closed = True


@pytest.fixture()
def engine(tmp_path: Path) -> Engine:
    engine = create_engine(f"sqlite:///{tmp_path / 'quickrepo_test.db'}")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def opened_sessions() -> list[TrackingSession]:
    return []


@pytest.fixture()
def session_factory(
    engine: Engine, opened_sessions: list[TrackingSession]
) -> Callable[[], TrackingSession]:
    maker = sessionmaker(bind=engine, class_=TrackingSession)

    def _factory() -> TrackingSession:
        session = maker()
        opened_sessions.append(session)
        return session

    return _factory


@pytest.fixture()
def author_repo(session_factory) -> AuthorRepository:
    return AuthorRepository(session_factory)


@pytest.fixture()
def book_repo(session_factory) -> BookRepository:
    return BookRepository(session_factory)


@pytest.fixture()
def seed_authors(author_repo: AuthorRepository) -> Callable[..., list[Author]]:
    def _seed(*names: str) -> list[Author]:
        return [
            author_repo.add(Author(name=name, email=f"{name.lower()}@example.com"))
            for name in names
        ]

    return _seed


@pytest.fixture()
def default_database(tmp_path: Path) -> str:
    """Point the shared engine at a throwaway SQLite file."""

    original_url = settings.database_url
    settings.database_url = f"sqlite:///{tmp_path / 'default.db'}"
    dispose_engine()
    yield settings.database_url
    dispose_engine()
    settings.database_url = original_url
