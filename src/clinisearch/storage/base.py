"""
Document store contract consumed by the search engine and record service.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import ContextManager, Dict, Any, List, Optional, Sequence

from sqlalchemy.orm import Session

from clinisearch.patients.schemas import Patient
from .cursor import Cursor


class StoreError(Exception):
    """Base error raised by document store adapters."""


class MissingIndexError(StoreError):
    """Raised when a range query targets a field without a backing index."""

    def __init__(self, field_name: str):
        super().__init__(f"No index on field '{field_name}'")
        self.field_name = field_name


@dataclass
class QueryPage:
    items: List[Patient] = field(default_factory=list)
    next_cursor: Optional[Cursor] = None
    has_more: bool = False

    @classmethod
    def empty(cls) -> "QueryPage":
        return cls()


class DocumentStore(ABC):
    """Abstract interface for the patient document store."""

    @abstractmethod
    async def connect(self) -> None:
        """Establish connection."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close connection."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if reachable."""
        pass

    @abstractmethod
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
        """
        Return records with `lower_bound <= field < upper_bound`.

        Args:
            field: Indexed field to range over
            lower_bound: Inclusive lower bound
            upper_bound: Exclusive upper bound
            order_by: Field that orders the page (ties broken by newest first)
            page_limit: Maximum number of records
            cursor: Resume after the record this cursor was minted from
            owner_id: Restrict to records owned by this principal
        """
        pass

    @abstractmethod
    async def contains_query(
        self,
        fields: Sequence[str],
        needle: str,
        page_limit: int,
        cursor: Optional[Cursor] = None,
        owner_id: Optional[str] = None,
    ) -> QueryPage:
        """Return records where any of `fields` contains `needle`, newest first."""
        pass

    @abstractmethod
    def cursor_after(self, entity: Patient, order_by: str) -> Cursor:
        """Mint the cursor that resumes a query ordered by `order_by` after `entity`."""
        pass

    @abstractmethod
    async def get_by_id(self, identity: str) -> Optional[Patient]:
        pass

    @abstractmethod
    async def create(self, entity: Patient) -> Patient:
        pass

    @abstractmethod
    async def update(self, identity: str, updates: Dict[str, Any]) -> Optional[Patient]:
        pass

    @abstractmethod
    async def delete(self, identity: str) -> bool:
        pass


class StorageAdapter(ABC):
    """Abstract base class for SQL connection adapters."""

    @abstractmethod
    def connect(self) -> None:
        """Establish connection to the storage backend."""
        pass

    @abstractmethod
    def close(self) -> None:
        """Close the connection."""
        pass

    @abstractmethod
    def health_check(self) -> bool:
        """Check if the backend is reachable."""
        pass

    @abstractmethod
    def get_session(self) -> ContextManager[Session]:
        """Provide a transactional session scope."""
        pass
