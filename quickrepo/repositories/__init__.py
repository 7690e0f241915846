from .base import (
    BaseRepository,
    ContextRepository,
    RepositoryConfigurationError,
    SupportsCreateContext,
)
from .state import EntityState, entity_state, set_state

__all__ = [
    "BaseRepository",
    "ContextRepository",
    "EntityState",
    "RepositoryConfigurationError",
    "SupportsCreateContext",
    "entity_state",
    "set_state",
]
