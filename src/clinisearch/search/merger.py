"""
Result Merger - combine strategy pages into one deduplicated, newest-first list.
"""

from itertools import chain
from typing import Collection, Iterable, List, Set

from clinisearch.patients.schemas import Patient
from clinisearch.storage.base import QueryPage


def sort_newest_first(entities: Iterable[Patient]) -> List[Patient]:
    # sorted() is stable, also with reverse=True, so equal timestamps keep input order
    return sorted(entities, key=lambda p: p.created_at.timestamp(), reverse=True)


def merge_entities(entities: Iterable[Patient]) -> List[Patient]:
    """First occurrence of each identity wins; later duplicates are dropped."""
    seen: Set[str] = set()
    merged: List[Patient] = []
    for entity in entities:
        if entity.unique_id in seen:
            continue
        seen.add(entity.unique_id)
        merged.append(entity)
    return sort_newest_first(merged)


def merge_pages(pages: Iterable[QueryPage]) -> List[Patient]:
    return merge_entities(chain.from_iterable(page.items for page in pages))


def exclude_known(entities: Iterable[Patient], known_ids: Collection[str]) -> List[Patient]:
    return [e for e in entities if e.unique_id not in known_ids]
