from __future__ import annotations

from enum import StrEnum
from typing import Any

import sqlalchemy as sa
from sqlalchemy.exc import InvalidRequestError
from sqlalchemy.orm import (
    InstanceState,
    Session,
    make_transient,
    make_transient_to_detached,
)
from sqlalchemy.orm.attributes import flag_modified
from sqlalchemy.orm.base import state_str


class EntityState(StrEnum):
    """Pending operation attached to an entity inside a session."""

    DETACHED = "detached"
    UNCHANGED = "unchanged"
    ADDED = "added"
    MODIFIED = "modified"
    DELETED = "deleted"


def entity_state(entity: Any) -> EntityState:
    """Report what the next commit will do with ``entity``."""

    state = sa.inspect(entity)
    if state.transient or state.detached:
        return EntityState.DETACHED
    if state.pending:
        return EntityState.ADDED
    if state.deleted or entity in state.session.deleted:
        return EntityState.DELETED
    if state.modified:
        return EntityState.MODIFIED
    return EntityState.UNCHANGED


def set_state(session: Session, entity: Any, target: EntityState) -> Any:
    """Attach ``entity`` to ``session`` with the given pending operation.

    Transient instances that already carry their primary key are treated as
    rows that exist in the database, the same way a detached instance is.
    Failures raised by the session (an instance owned by another session, a
    second instance with the same identity) propagate unchanged.
    """

    if target is EntityState.ADDED:
        _mark_added(session, entity)
    elif target is EntityState.MODIFIED:
        _mark_modified(session, entity)
    elif target is EntityState.DELETED:
        _mark_deleted(session, entity)
    elif target is EntityState.UNCHANGED:
        _attach(session, entity)
    else:
        session.expunge(entity)
    return entity


def _has_complete_key(state: InstanceState) -> bool:
    mapper = state.mapper
    for column in mapper.primary_key:
        key = mapper.get_property_by_column(column).key
        if state.dict.get(key) is None:
            return False
    return True


def _attach(session: Session, entity: Any) -> InstanceState:
    state = sa.inspect(entity)
    if state.transient:
        if not _has_complete_key(state):
            raise InvalidRequestError(
                f"Instance {state_str(state)} has no primary key and was never "
                "persisted; it cannot be attached as an existing row"
            )
        make_transient_to_detached(entity)
    session.add(entity)
    return state


def _mark_added(session: Session, entity: Any) -> None:
    state = sa.inspect(entity)
    if state.persistent or state.detached:
        # drop the identity so the flush emits an INSERT
        make_transient(entity)
    session.add(entity)


def _mark_modified(session: Session, entity: Any) -> None:
    state = _attach(session, entity)
    if state.pending:
        return

    primary_keys = set(state.mapper.primary_key)
    for attr in state.mapper.column_attrs:
        if attr.key not in state.dict:
            continue
        if primary_keys.intersection(attr.columns):
            continue
        flag_modified(entity, attr.key)


def _mark_deleted(session: Session, entity: Any) -> None:
    state = _attach(session, entity)
    if state.pending:
        # never inserted, so deleting just cancels the insert
        session.expunge(entity)
        return
    session.delete(entity)
