"""
Query Strategies - one lookup method per strategy.

A strategy turns a search term into exactly one store call and returns a
trimmed page plus the cursor that resumes it. Strategies hold no state;
pagination state lives in the session's cursor set.
"""

import asyncio
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional, Sequence, Tuple

from clinisearch.platform.config import settings
from clinisearch.platform.logging import get_logger
from clinisearch.storage.base import DocumentStore, MissingIndexError, QueryPage
from clinisearch.storage.cursor import Cursor

logger = get_logger(__name__)


def prefix_bounds(term: str, sentinel: Optional[str] = None) -> Tuple[str, str]:
    """Range `[term, term + sentinel)` matching every value that starts with `term`."""
    if sentinel is None:
        sentinel = settings.SEARCH_PREFIX_SENTINEL
    return term, term + sentinel


def exact_bounds(value: str) -> Tuple[str, str]:
    """Range matching `value` only; no stored value contains a control character."""
    return value, value + "\x01"


def trim_page(
    raw: QueryPage,
    limit: int,
    store: DocumentStore,
    order_by: str,
) -> QueryPage:
    """
    Trim a `limit + 1` fetch down to `limit` items.

    The extra record only proves that another page exists; the continuation
    cursor is minted from the last record actually returned.
    """
    items = raw.items[:limit]
    has_more = len(raw.items) > limit
    next_cursor = store.cursor_after(items[-1], order_by) if has_more and items else None
    return QueryPage(items=items, next_cursor=next_cursor, has_more=next_cursor is not None)


class QueryStrategy(ABC):
    """A single lookup method executed against the document store."""

    name: str

    @abstractmethod
    async def execute(
        self,
        store: DocumentStore,
        term: str,
        principal: str,
        cursor: Optional[Cursor] = None,
        limit: int = 20,
    ) -> QueryPage:
        pass

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class PrefixStrategy(QueryStrategy):
    """Range query on one indexed field, bounded by the term and the high sentinel."""

    def __init__(self, name: str, field: str, lowercase: bool = True):
        self.name = name
        self.field = field
        self.lowercase = lowercase

    def normalize(self, term: str) -> str:
        return term.lower() if self.lowercase else term

    async def execute(
        self,
        store: DocumentStore,
        term: str,
        principal: str,
        cursor: Optional[Cursor] = None,
        limit: int = 20,
    ) -> QueryPage:
        lower, upper = prefix_bounds(self.normalize(term))
        raw = await store.range_query(
            field=self.field,
            lower_bound=lower,
            upper_bound=upper,
            order_by=self.field,
            page_limit=limit + 1,
            cursor=cursor,
            owner_id=principal,
        )
        return trim_page(raw, limit, store, self.field)


class ContainsStrategy(QueryStrategy):
    """Substring match across several fields; boosts recall next to the prefix strategies."""

    def __init__(self, name: str, fields: Sequence[str]):
        self.name = name
        self.fields = tuple(fields)

    async def execute(
        self,
        store: DocumentStore,
        term: str,
        principal: str,
        cursor: Optional[Cursor] = None,
        limit: int = 20,
    ) -> QueryPage:
        raw = await store.contains_query(
            fields=self.fields,
            needle=term.lower(),
            page_limit=limit + 1,
            cursor=cursor,
            owner_id=principal,
        )
        return trim_page(raw, limit, store, "created_at")


PHONE_PREFIX = PrefixStrategy("phone_prefix", field="phone", lowercase=False)
IDENTIFIER_PREFIX = PrefixStrategy("identifier_prefix", field="family_id")
NAME_PREFIX = PrefixStrategy("name_prefix", field="name_lower")
CONTAINS = ContainsStrategy("contains", fields=("name_lower", "family_id", "phone"))

NUMERIC_STRATEGIES: Tuple[QueryStrategy, ...] = (PHONE_PREFIX,)
TEXT_STRATEGIES: Tuple[QueryStrategy, ...] = (IDENTIFIER_PREFIX, NAME_PREFIX, CONTAINS)


def strategies_for(is_numeric: bool) -> List[QueryStrategy]:
    return list(NUMERIC_STRATEGIES if is_numeric else TEXT_STRATEGIES)


@dataclass
class StrategyOutcome:
    """Result of one strategy inside a fan-out. Failed strategies carry an empty page."""

    strategy: str
    page: QueryPage
    error: Optional[Exception] = None

    @property
    def failed(self) -> bool:
        return self.error is not None


async def execute_strategies(
    store: DocumentStore,
    calls: Sequence[Tuple[QueryStrategy, Optional[Cursor]]],
    term: str,
    principal: str,
    limit: int,
) -> List[StrategyOutcome]:
    """
    Run strategies concurrently and wait for all of them to settle.

    A strategy that raises degrades to an empty, exhausted page; the others
    are unaffected. Outcomes are returned in call order.
    """
    results = await asyncio.gather(
        *(
            strategy.execute(store, term, principal, cursor=cursor, limit=limit)
            for strategy, cursor in calls
        ),
        return_exceptions=True,
    )

    outcomes: List[StrategyOutcome] = []
    for (strategy, _), result in zip(calls, results):
        if isinstance(result, Exception):
            if isinstance(result, MissingIndexError):
                logger.warning(
                    "strategy_index_missing",
                    strategy=strategy.name,
                    field=result.field_name,
                )
            else:
                logger.warning(
                    "strategy_failed",
                    strategy=strategy.name,
                    error=str(result),
                    error_type=type(result).__name__,
                )
            outcomes.append(StrategyOutcome(strategy.name, QueryPage.empty(), result))
        elif isinstance(result, BaseException):
            raise result
        else:
            outcomes.append(StrategyOutcome(strategy.name, result))
    return outcomes
