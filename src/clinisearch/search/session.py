"""
Search Session Controller - drives one user's patient search.

The controller owns the current term and its strategy set, fans a search out
across the strategies, merges what comes back, keeps a cursor per strategy
for "load more", writes every returned patient through to the entity cache
and publishes the merged list on its result stream.

Concurrent calls are not sequenced: if a slow `search()` finishes after a
newer one, its results overwrite the newer session's published list. Callers
that fire searches per keystroke need their own debounce or request token.
Each search owns its cursor set, so a late call only records into the set it
started with; a `load_more()` that finishes after `clear()` or a newer
`search()` is dropped instead of appended.
"""

import re
from typing import Dict, List, Optional

from clinisearch.patients.schemas import Patient
from clinisearch.platform.config import settings
from clinisearch.platform.logging import get_logger
from clinisearch.storage.base import DocumentStore

from .cache import EntityCache
from .cursors import PaginationCursorSet
from .merger import exclude_known, merge_pages
from .strategies import (
    QueryStrategy,
    StrategyOutcome,
    execute_strategies,
    strategies_for,
)
from .stream import ResultStream

logger = get_logger(__name__)

NUMERIC_TERM = re.compile(r"\d+")


def is_numeric_term(term: str) -> bool:
    return NUMERIC_TERM.fullmatch(term) is not None


class SearchSessionController:
    """Search, load-more and clear for a single user context."""

    def __init__(
        self,
        store: DocumentStore,
        cache: EntityCache,
        page_size: Optional[int] = None,
    ):
        self.store = store
        self.cache = cache
        self.page_size = page_size or settings.SEARCH_PAGE_SIZE
        self.stream = ResultStream()

        self._cursors = PaginationCursorSet()
        self._strategies: Dict[str, QueryStrategy] = {}
        self._results: List[Patient] = []

        self.term: str = ""
        self.is_numeric: bool = False
        self.has_more_results: bool = False
        self.is_loading_more: bool = False
        self.last_search_failed: bool = False

    @property
    def results(self) -> List[Patient]:
        return list(self._results)

    @property
    def active_strategies(self) -> List[str]:
        return list(self._strategies)

    async def search(self, term: str, principal: str) -> None:
        """
        Start a new search session for `term`, replacing the current one.

        The result stream always receives a list; when every strategy fails the
        list is empty and `last_search_failed` is set.
        """
        trimmed = term.strip()
        if not trimmed:
            self.clear()
            return

        # Mode and strategy set are fixed for the lifetime of this session
        self.term = trimmed
        self.is_numeric = is_numeric_term(trimmed)
        strategies = strategies_for(self.is_numeric)
        self._strategies = {s.name: s for s in strategies}
        cursors = PaginationCursorSet()
        cursors.reset(self._strategies)
        self._cursors = cursors
        self.has_more_results = False
        self.last_search_failed = False

        logger.info(
            "search_started",
            term=trimmed,
            mode="numeric" if self.is_numeric else "text",
            strategies=self.active_strategies,
        )

        outcomes = await execute_strategies(
            self.store,
            [(strategy, None) for strategy in strategies],
            trimmed,
            principal,
            self.page_size,
        )

        if outcomes and all(outcome.failed for outcome in outcomes):
            self.last_search_failed = True
            logger.error(
                "search_failed",
                term=trimmed,
                errors={o.strategy: str(o.error) for o in outcomes},
            )

        merged = merge_pages(outcome.page for outcome in outcomes)
        self._record(cursors, outcomes)
        self.cache.put_many(merged)
        # Published even when a newer search started meanwhile
        self._publish(merged)

        logger.info(
            "search_completed",
            term=trimmed,
            results=len(merged),
            has_more=self.has_more_results,
        )

    async def load_more(self, principal: str) -> None:
        """
        Fetch the next page from every strategy that still has a cursor and
        append the patients not already shown.
        """
        if not self.has_more_results or self.is_loading_more:
            return

        self.is_loading_more = True
        try:
            cursors = self._cursors
            term = self.term
            live = cursors.live()
            outcomes = await execute_strategies(
                self.store,
                [(self._strategies[name], cursors.cursor(name)) for name in live],
                term,
                principal,
                self.page_size,
            )

            merged = merge_pages(outcome.page for outcome in outcomes)
            self._record(cursors, outcomes)
            self.cache.put_many(merged)

            if cursors is not self._cursors:
                # Cleared or replaced by a new search while the page was loading
                logger.info("load_more_discarded", term=term, strategies=live)
                return

            shown = {patient.unique_id for patient in self._results}
            appended = exclude_known(merged, shown)
            self._publish(self._results + appended)

            logger.info(
                "load_more_completed",
                term=term,
                strategies=live,
                appended=len(appended),
                has_more=self.has_more_results,
            )
        finally:
            self.is_loading_more = False

    def clear(self) -> None:
        """Reset the session and publish an empty list."""
        self.term = ""
        self.is_numeric = False
        self._strategies = {}
        self._cursors = PaginationCursorSet()
        self.has_more_results = False
        self.last_search_failed = False
        self._publish([])

    def _record(self, cursors: PaginationCursorSet, outcomes: List[StrategyOutcome]) -> None:
        for outcome in outcomes:
            cursors.record(outcome.strategy, outcome.page)
        # Flags follow the current session only
        if cursors is self._cursors:
            self.has_more_results = cursors.has_more

    def _publish(self, results: List[Patient]) -> None:
        self._results = list(results)
        self.stream.publish(self._results)
