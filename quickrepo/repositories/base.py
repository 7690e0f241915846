from __future__ import annotations

from contextlib import contextmanager
from typing import (
    Any,
    Callable,
    Generator,
    Generic,
    Protocol,
    TypeVar,
    cast,
)

from quickrepo.core.db import get_session, session_scope
from quickrepo.core.logging import get_logger
from quickrepo.core.settings import settings
from sqlalchemy import event
from sqlalchemy.orm import ORMExecuteState, Query, Session, raiseload

from .state import EntityState, set_state

SessionT = TypeVar("SessionT", bound=Session)
SessionT_co = TypeVar("SessionT_co", bound=Session, covariant=True)
EntityT = TypeVar("EntityT")
KeyT = TypeVar("KeyT")

QueryFilter = Callable[..., Query]


class RepositoryConfigurationError(TypeError):
    """Raised when a repository is declared without a mapped model."""


class SupportsCreateContext(Protocol[SessionT_co]):
    def create_context(self) -> SessionT_co:
        """Create a configured session; the caller must close it."""
        ...


def _disable_lazy_loading(orm_execute_state: ORMExecuteState) -> None:
    if (
        orm_execute_state.is_select
        and orm_execute_state.all_mappers
        and not orm_execute_state.is_column_load
        and not orm_execute_state.is_relationship_load
    ):
        orm_execute_state.statement = orm_execute_state.statement.options(
            raiseload("*", sql_only=True)
        )


class ContextRepository(Generic[SessionT]):
    """Builds sessions configured with fixed change detection and loading modes."""

    def __init__(
        self,
        context_factory: Callable[[], SessionT] | None = None,
        *,
        auto_detect_changes: bool | None = None,
        lazy_loading: bool | None = None,
    ) -> None:
        if context_factory is None:
            context_factory = cast(Callable[[], SessionT], get_session)
        self._context_factory = context_factory
        self._auto_detect_changes = (
            settings.auto_detect_changes
            if auto_detect_changes is None
            else auto_detect_changes
        )
        self._lazy_loading = (
            settings.lazy_loading if lazy_loading is None else lazy_loading
        )
        self.logger = get_logger(self.__class__.__name__)

    @property
    def auto_detect_changes_enabled(self) -> bool:
        return self._auto_detect_changes

    @property
    def lazy_loading_enabled(self) -> bool:
        return self._lazy_loading

    def create_context(self) -> SessionT:
        """Return a new session; use it in a ``with`` block so it gets closed."""

        session = self._context_factory()
        session.autoflush = self._auto_detect_changes
        if not self._lazy_loading:
            event.listen(session, "do_orm_execute", _disable_lazy_loading)
        return session


class BaseRepository(ContextRepository[SessionT], Generic[SessionT, EntityT, KeyT]):
    """Generic CRUD over one mapped class.

    Every operation accepts an optional ``session``. When given, the work is
    done inside that session and nothing is committed or closed. When omitted,
    a session is created for the call, committed for mutations and closed
    before returning, also when the operation raises.
    """

    model: type[Any] | None = None

    def __init__(
        self,
        context_factory: Callable[[], SessionT] | None = None,
        *,
        model: type[EntityT] | None = None,
        auto_detect_changes: bool | None = None,
        lazy_loading: bool | None = None,
    ) -> None:
        super().__init__(
            context_factory,
            auto_detect_changes=auto_detect_changes,
            lazy_loading=lazy_loading,
        )
        if model is not None:
            self.model = model
        if self.model is None:
            raise RepositoryConfigurationError(
                f"{self.__class__.__name__} must declare a mapped model"
            )

    def _create_owned_context(self) -> SessionT:
        session = self.create_context()
        # returned entities are read after the session is gone
        session.expire_on_commit = False
        return session

    @contextmanager
    def _self_managed(self, *, commit: bool) -> Generator[SessionT, None, None]:
        try:
            with session_scope(self._create_owned_context, commit=commit) as session:
                yield session
        except Exception:
            self.logger.debug(
                "Self-managed %s session failed", self._model_name, exc_info=True
            )
            raise

    @property
    def _model_name(self) -> str:
        return getattr(self.model, "__name__", repr(self.model))

    def get(self, key: KeyT, session: SessionT | None = None) -> EntityT | None:
        if session is None:
            with self._self_managed(commit=False) as owned:
                return self.get(key, owned)
        return session.get(self.model, key)

    def query(self, session: SessionT) -> Query[EntityT]:
        """Lazy view over every ``model`` row, bound to ``session``."""

        return session.query(self.model)

    def get_all(
        self,
        query_filter: QueryFilter | None = None,
        *filter_args: Any,
        session: SessionT | None = None,
    ) -> list[EntityT]:
        """Materialize the view, optionally shaped by ``query_filter``.

        ``query_filter`` receives the query followed by ``filter_args`` and
        returns a query; it may filter, order, limit or add loader options.
        """

        if session is None:
            with self._self_managed(commit=False) as owned:
                return self.get_all(query_filter, *filter_args, session=owned)
        result = self.query(session)
        if query_filter is not None:
            result = query_filter(result, *filter_args)
        return result.all()

    def add(self, entity: EntityT, session: SessionT | None = None) -> EntityT:
        if session is None:
            with self._self_managed(commit=True) as owned:
                return self.add(entity, owned)
        return set_state(session, entity, EntityState.ADDED)

    def update(self, entity: EntityT, session: SessionT | None = None) -> EntityT:
        if session is None:
            with self._self_managed(commit=True) as owned:
                return self.update(entity, owned)
        return set_state(session, entity, EntityState.MODIFIED)

    def delete(self, entity: EntityT, session: SessionT | None = None) -> None:
        if session is None:
            with self._self_managed(commit=True) as owned:
                self.delete(entity, owned)
            return
        set_state(session, entity, EntityState.DELETED)
