"""Generic SQLAlchemy repositories with self-managed or caller-supplied sessions."""

from quickrepo.repositories import (
    BaseRepository,
    ContextRepository,
    EntityState,
    RepositoryConfigurationError,
    SupportsCreateContext,
    entity_state,
    set_state,
)

__version__ = "0.1.0"

__all__ = [
    "BaseRepository",
    "ContextRepository",
    "EntityState",
    "RepositoryConfigurationError",
    "SupportsCreateContext",
    "entity_state",
    "set_state",
]
