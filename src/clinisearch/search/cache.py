"""
Entity Cache - short-lived, principal-scoped patient cache.
"""

import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional

from clinisearch.patients.schemas import Patient
from clinisearch.platform.config import settings
from clinisearch.platform.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CacheEntry:
    entity: Patient
    inserted_at: float
    principal: str


class EntityCache:
    """
    TTL-bounded map from patient identity to the last fetched record.

    Entries expire lazily: an entry older than the TTL is dropped the next
    time it is read. An entry is only returned to the principal that owns it;
    any other principal gets a plain miss so the cache never reveals whether a
    record exists.

    Writers must call `invalidate()` before reporting an update or delete as
    complete; the cache has no way of noticing writes on its own.
    """

    def __init__(
        self,
        ttl_seconds: Optional[float] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.ttl = settings.SEARCH_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def get(self, identity: str, principal: str) -> Optional[Patient]:
        entry = self._entries.get(identity)
        if entry is None:
            return None

        if self._clock() - entry.inserted_at > self.ttl:
            del self._entries[identity]
            logger.debug("cache_entry_expired", identity=identity)
            return None

        if entry.principal != principal:
            return None

        return entry.entity

    def put(self, entity: Patient) -> None:
        self._entries[entity.unique_id] = CacheEntry(
            entity=entity,
            inserted_at=self._clock(),
            principal=entity.owner_id,
        )

    def put_many(self, entities: Iterable[Patient]) -> None:
        for entity in entities:
            self.put(entity)

    def invalidate(self, identity: str) -> bool:
        removed = self._entries.pop(identity, None) is not None
        if removed:
            logger.debug("cache_entry_invalidated", identity=identity)
        return removed

    def clear(self) -> None:
        self._entries.clear()
        logger.info("cache_cleared")

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries
