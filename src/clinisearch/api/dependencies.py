from collections import OrderedDict
from typing import Annotated, Optional
from fastapi import Depends, Header, HTTPException, status

from clinisearch.api.database import get_postgres_adapter, close_postgres_adapter
from clinisearch.context import SearchContext
from clinisearch.patients.service import PatientRecordService
from clinisearch.platform.config import settings
from clinisearch.platform.logging import get_logger
from clinisearch.storage.base import DocumentStore
from clinisearch.storage.memory_store import InMemoryDocumentStore
from clinisearch.storage.sql_store import SqlDocumentStore

logger = get_logger(__name__)

# Helper for current implementation (Header based Auth)
PRINCIPAL_HEADER = "X-User-ID"

# Singletons
_document_store: DocumentStore | None = None
# One search context per signed-in principal, least recently used first
_contexts: "OrderedDict[str, SearchContext]" = OrderedDict()


def get_document_store() -> DocumentStore:
    global _document_store
    if not _document_store:
        if settings.DOCUMENT_STORE_BACKEND == "postgres":
            _document_store = SqlDocumentStore(get_postgres_adapter())
        else:
            _document_store = InMemoryDocumentStore()
    return _document_store


def require_principal(
    x_user_id: Annotated[Optional[str], Header(alias=PRINCIPAL_HEADER)] = None,
) -> str:
    """
    Dependency returning the calling principal from the X-User-ID header.
    In production, this would come from the session token.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required"
        )
    return x_user_id.strip()


def get_search_context(
    principal: Annotated[str, Depends(require_principal)],
    store: Annotated[DocumentStore, Depends(get_document_store)],
) -> SearchContext:
    context = _contexts.get(principal)
    if context is not None:
        _contexts.move_to_end(principal)
        return context

    while len(_contexts) >= settings.SEARCH_MAX_CONTEXTS:
        evicted, stale = _contexts.popitem(last=False)
        stale.close()
        logger.info("search_context_evicted", principal=evicted)

    context = SearchContext(store, principal)
    _contexts[principal] = context
    logger.info("search_context_created", principal=principal)
    return context


def close_search_context(principal: str) -> bool:
    context = _contexts.pop(principal, None)
    if context is None:
        return False
    context.close()
    return True


def get_patient_service(
    context: Annotated[SearchContext, Depends(get_search_context)],
) -> PatientRecordService:
    return context.patients


async def init_resources() -> None:
    """Initialize the document store."""
    if settings.DOCUMENT_STORE_BACKEND == "postgres":
        adapter = get_postgres_adapter()
        adapter.connect()
        adapter.create_tables()

    store = get_document_store()
    await store.connect()


async def close_resources() -> None:
    """Close all resources."""
    global _document_store

    for principal in list(_contexts):
        close_search_context(principal)

    if _document_store:
        await _document_store.close()
        _document_store = None

    close_postgres_adapter()
