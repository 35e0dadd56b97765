"""CliniSearch Storage Layer - Document store contract and adapters (in-memory, Postgres)."""

from .base import DocumentStore, MissingIndexError, QueryPage, StorageAdapter, StoreError
from .cursor import Cursor
from .memory_store import InMemoryDocumentStore
from .postgres_adapter import PostgresAdapter, PostgresConfig
from .sql_store import SqlDocumentStore

__all__ = [
    "DocumentStore",
    "StorageAdapter",
    "QueryPage",
    "Cursor",
    "StoreError",
    "MissingIndexError",
    "InMemoryDocumentStore",
    "SqlDocumentStore",
    "PostgresAdapter",
    "PostgresConfig",
]
