"""
SQL-backed document store.

Answers the same range/contains contract as the in-memory store using keyset
pagination over the `patients` table. SQLAlchemy calls are blocking, so each
operation runs in a worker thread and only plain Patient objects cross back
into the event loop.
"""

import asyncio
from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Sequence
import logging

from sqlalchemy import and_, func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from clinisearch.patients.schemas import Patient
from .base import DocumentStore, QueryPage, StorageAdapter, StoreError
from .cursor import Cursor
from .mapping import (
    INDEXED_FIELDS,
    apply_updates_to_model,
    patient_from_model,
    patient_to_model,
)
from .models import PatientModel

logger = logging.getLogger(__name__)

_COLUMNS = {
    "phone": PatientModel.phone,
    "family_id": PatientModel.family_id,
    "name_lower": PatientModel.name_lower,
    "created_at": PatientModel.created_at,
}


def _column(name: str):
    try:
        return _COLUMNS[name]
    except KeyError:
        raise StoreError(f"Unsupported field '{name}'") from None


class SqlDocumentStore(DocumentStore):
    """DocumentStore over a SQLAlchemy StorageAdapter (Postgres in production, SQLite in tests)."""

    def __init__(self, adapter: StorageAdapter):
        self.adapter = adapter

    async def connect(self) -> None:
        await asyncio.to_thread(self.adapter.connect)

    async def close(self) -> None:
        await asyncio.to_thread(self.adapter.close)

    async def health_check(self) -> bool:
        return await asyncio.to_thread(self.adapter.health_check)

    # --- Queries ---

    def _keyset_clause(self, cursor: Cursor, order_by: str):
        try:
            order_value, created_at, unique_id = cursor.decode()
            created = datetime.fromisoformat(created_at)
        except (TypeError, ValueError) as e:
            raise StoreError(f"Invalid cursor for order '{order_by}'") from e

        newer_tie = or_(
            PatientModel.created_at < created,
            and_(PatientModel.created_at == created, PatientModel.unique_id > unique_id),
        )
        if order_by == "created_at":
            return newer_tie

        column = _column(order_by)
        return or_(column > order_value, and_(column == order_value, newer_tie))

    def _ordering(self, order_by: str) -> List[Any]:
        ordering = [PatientModel.created_at.desc(), PatientModel.unique_id.asc()]
        if order_by != "created_at":
            ordering.insert(0, _column(order_by).asc())
        return ordering

    @contextmanager
    def _session(self, operation: str) -> Iterator[Session]:
        """Adapter session scope that reports database failures as StoreError."""
        try:
            with self.adapter.get_session() as session:
                yield session
        except SQLAlchemyError as e:
            logger.error(f"Patient {operation} failed: {e}")
            raise StoreError(str(e)) from e

    def _run_page(self, stmt, order_by: str, page_limit: int) -> QueryPage:
        with self._session("query") as session:
            rows = session.scalars(stmt.limit(page_limit)).all()
            items = [patient_from_model(row) for row in rows]

        # A full page is only a hint that more rows may follow
        has_more = len(items) == page_limit and page_limit > 0
        next_cursor = self.cursor_after(items[-1], order_by) if has_more else None
        return QueryPage(items=items, next_cursor=next_cursor, has_more=has_more)

    def _range_query_sync(
        self,
        field: str,
        lower_bound: str,
        upper_bound: str,
        order_by: str,
        page_limit: int,
        cursor: Optional[Cursor],
        owner_id: Optional[str],
    ) -> QueryPage:
        if field not in INDEXED_FIELDS:
            raise StoreError(f"Cannot range over '{field}'")
        column = _column(field)
        conditions = [column >= lower_bound, column < upper_bound]
        if owner_id is not None:
            conditions.append(PatientModel.owner_id == owner_id)
        if cursor is not None:
            conditions.append(self._keyset_clause(cursor, order_by))

        stmt = select(PatientModel).where(*conditions).order_by(*self._ordering(order_by))
        return self._run_page(stmt, order_by, page_limit)

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
        return await asyncio.to_thread(
            self._range_query_sync,
            field, lower_bound, upper_bound, order_by, page_limit, cursor, owner_id,
        )

    def _contains_query_sync(
        self,
        fields: Sequence[str],
        needle: str,
        page_limit: int,
        cursor: Optional[Cursor],
        owner_id: Optional[str],
    ) -> QueryPage:
        unknown = [f for f in fields if f not in INDEXED_FIELDS]
        if unknown:
            raise StoreError(f"Cannot scan fields {unknown}")

        needle = needle.lower()
        conditions = [
            or_(*[func.lower(_column(f)).contains(needle, autoescape=True) for f in fields])
        ]
        if owner_id is not None:
            conditions.append(PatientModel.owner_id == owner_id)
        if cursor is not None:
            conditions.append(self._keyset_clause(cursor, "created_at"))

        stmt = select(PatientModel).where(*conditions).order_by(*self._ordering("created_at"))
        return self._run_page(stmt, "created_at", page_limit)

    async def contains_query(
        self,
        fields: Sequence[str],
        needle: str,
        page_limit: int,
        cursor: Optional[Cursor] = None,
        owner_id: Optional[str] = None,
    ) -> QueryPage:
        return await asyncio.to_thread(
            self._contains_query_sync, fields, needle, page_limit, cursor, owner_id
        )

    def cursor_after(self, entity: Patient, order_by: str) -> Cursor:
        order_value = None if order_by == "created_at" else getattr(entity, order_by)
        return Cursor.encode([order_value, entity.created_at.isoformat(), entity.unique_id])

    # --- Documents ---

    def _get_sync(self, identity: str) -> Optional[Patient]:
        with self._session("lookup") as session:
            row = session.get(PatientModel, identity)
            return patient_from_model(row) if row else None

    async def get_by_id(self, identity: str) -> Optional[Patient]:
        return await asyncio.to_thread(self._get_sync, identity)

    def _create_sync(self, entity: Patient) -> Patient:
        with self._session("create") as session:
            session.merge(patient_to_model(entity))
        return entity

    async def create(self, entity: Patient) -> Patient:
        return await asyncio.to_thread(self._create_sync, entity)

    def _update_sync(self, identity: str, updates: Dict[str, Any]) -> Optional[Patient]:
        with self._session("update") as session:
            row = session.get(PatientModel, identity)
            if not row:
                return None
            apply_updates_to_model(row, updates)
            session.flush()
            return patient_from_model(row)

    async def update(self, identity: str, updates: Dict[str, Any]) -> Optional[Patient]:
        return await asyncio.to_thread(self._update_sync, identity, updates)

    def _delete_sync(self, identity: str) -> bool:
        with self._session("delete") as session:
            row = session.get(PatientModel, identity)
            if not row:
                return False
            session.delete(row)
            return True

    async def delete(self, identity: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, identity)
