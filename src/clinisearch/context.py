"""
Per-user search context.

One SearchContext is built for each signed-in user and passed to whatever
drives the search UI. It owns the entity cache and shares it between the
search session and the record service, so a write made through `patients`
is visible to the next lookup made through either of them.
"""

from typing import Optional

from clinisearch.patients.service import PatientRecordService
from clinisearch.platform.config import Settings, settings as default_settings
from clinisearch.platform.logging import get_logger, principal_context
from clinisearch.search.cache import EntityCache
from clinisearch.search.session import SearchSessionController
from clinisearch.storage.base import DocumentStore

logger = get_logger(__name__)


class SearchContext:

    def __init__(
        self,
        store: DocumentStore,
        principal: str,
        settings: Optional[Settings] = None,
    ):
        cfg = settings or default_settings
        self.store = store
        self.principal = principal
        self.cache = EntityCache(ttl_seconds=cfg.SEARCH_CACHE_TTL_SECONDS)
        self.session = SearchSessionController(store, self.cache, page_size=cfg.SEARCH_PAGE_SIZE)
        self.patients = PatientRecordService(store, self.cache)

    async def search(self, term: str) -> None:
        with principal_context(self.principal):
            await self.session.search(term, self.principal)

    async def load_more(self) -> None:
        with principal_context(self.principal):
            await self.session.load_more(self.principal)

    def close(self) -> None:
        """Drop all session state and cached records (logout or user switch)."""
        self.session.clear()
        self.cache.clear()
        logger.info("search_context_closed", principal=self.principal)
