"""Patient search engine: strategies, merging, pagination, cache and session control."""

from .cache import CacheEntry, EntityCache
from .cursors import PaginationCursorSet
from .merger import exclude_known, merge_entities, merge_pages
from .session import SearchSessionController
from .strategies import (
    CONTAINS,
    IDENTIFIER_PREFIX,
    NAME_PREFIX,
    PHONE_PREFIX,
    QueryStrategy,
    StrategyOutcome,
    execute_strategies,
    strategies_for,
)
from .stream import ResultStream

__all__ = [
    "EntityCache",
    "CacheEntry",
    "PaginationCursorSet",
    "merge_pages",
    "merge_entities",
    "exclude_known",
    "SearchSessionController",
    "QueryStrategy",
    "StrategyOutcome",
    "execute_strategies",
    "strategies_for",
    "PHONE_PREFIX",
    "IDENTIFIER_PREFIX",
    "NAME_PREFIX",
    "CONTAINS",
    "ResultStream",
]
