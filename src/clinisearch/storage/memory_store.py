"""
In-process document store.

Keeps patient documents as plain dicts and answers range/contains queries the
way an ordered-index document database would, including failing range queries
on fields that have no index. Used for local development and tests.
"""

from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from clinisearch.patients.schemas import Patient
from .base import DocumentStore, MissingIndexError, QueryPage, StoreError
from .cursor import Cursor
from .mapping import INDEXED_FIELDS, patient_from_document, patient_to_document

logger = logging.getLogger(__name__)

ORDERABLE_FIELDS = INDEXED_FIELDS + ("created_at",)


def _sort_key(order_value: Any, created_at: datetime, unique_id: str, order_by: str) -> Tuple:
    newest_first = -created_at.timestamp()
    if order_by == "created_at":
        return (newest_first, unique_id)
    return (order_value, newest_first, unique_id)


class InMemoryDocumentStore(DocumentStore):
    """Dict-backed DocumentStore with simulated per-field indexes."""

    def __init__(self, indexes: Optional[Iterable[str]] = None):
        self._documents: Dict[str, Dict[str, Any]] = {}
        self._indexes = set(INDEXED_FIELDS if indexes is None else indexes)
        self._connected = False

    async def connect(self) -> None:
        self._connected = True

    async def close(self) -> None:
        self._connected = False

    async def health_check(self) -> bool:
        return self._connected

    # --- Queries ---

    def _entity_key(self, patient: Patient, order_by: str) -> Tuple:
        order_value = None if order_by == "created_at" else getattr(patient, order_by)
        return _sort_key(order_value, patient.created_at, patient.unique_id, order_by)

    def _cursor_key(self, cursor: Cursor, order_by: str) -> Tuple:
        try:
            order_value, created_at, unique_id = cursor.decode()
            return _sort_key(order_value, datetime.fromisoformat(created_at), unique_id, order_by)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Invalid cursor for order '{order_by}'") from e

    def _owned(self, owner_id: Optional[str]) -> List[Patient]:
        return [
            patient_from_document(doc)
            for doc in self._documents.values()
            if owner_id is None or doc["owner_id"] == owner_id
        ]

    def _page(
        self,
        rows: List[Patient],
        order_by: str,
        page_limit: int,
        cursor: Optional[Cursor],
    ) -> QueryPage:
        rows.sort(key=lambda p: self._entity_key(p, order_by))
        if cursor is not None:
            after = self._cursor_key(cursor, order_by)
            rows = [p for p in rows if self._entity_key(p, order_by) > after]

        items = rows[:page_limit]
        has_more = len(rows) > page_limit
        next_cursor = self.cursor_after(items[-1], order_by) if items and has_more else None
        return QueryPage(items=items, next_cursor=next_cursor, has_more=has_more)

    async def range_query(
        self,
        field: str,
        lower_bound: str,
        upper_bound: str,
        order_by: str,
        page_limit: int,
        cursor: Optional[Cursor] = None,
        owner_id: Optional[str] = None,
    ) -> QueryPage:
        if field not in self._indexes:
            raise MissingIndexError(field)
        if order_by not in ORDERABLE_FIELDS:
            raise StoreError(f"Cannot order by '{order_by}'")

        rows = [
            p for p in self._owned(owner_id)
            if lower_bound <= getattr(p, field) < upper_bound
        ]
        page = self._page(rows, order_by, page_limit, cursor)
        logger.debug(
            "range_query field=%s lower=%r returned=%d has_more=%s",
            field, lower_bound, len(page.items), page.has_more,
        )
        return page

    async def contains_query(
        self,
        fields: Sequence[str],
        needle: str,
        page_limit: int,
        cursor: Optional[Cursor] = None,
        owner_id: Optional[str] = None,
    ) -> QueryPage:
        unknown = [f for f in fields if f not in INDEXED_FIELDS]
        if unknown:
            raise StoreError(f"Cannot scan fields {unknown}")

        needle = needle.lower()
        rows = [
            p for p in self._owned(owner_id)
            if any(needle in str(getattr(p, f)).lower() for f in fields)
        ]
        return self._page(rows, "created_at", page_limit, cursor)

    def cursor_after(self, entity: Patient, order_by: str) -> Cursor:
        order_value = None if order_by == "created_at" else getattr(entity, order_by)
        return Cursor.encode([order_value, entity.created_at.isoformat(), entity.unique_id])

    # --- Documents ---

    async def get_by_id(self, identity: str) -> Optional[Patient]:
        doc = self._documents.get(identity)
        return patient_from_document(doc) if doc else None

    async def create(self, entity: Patient) -> Patient:
        self._documents[entity.unique_id] = patient_to_document(entity)
        return entity

    async def update(self, identity: str, updates: Dict[str, Any]) -> Optional[Patient]:
        doc = self._documents.get(identity)
        if not doc:
            return None

        current = patient_from_document(doc).model_dump()
        current.update(updates)
        patient = Patient(**current)
        self._documents[identity] = patient_to_document(patient)
        return patient

    async def delete(self, identity: str) -> bool:
        return self._documents.pop(identity, None) is not None
