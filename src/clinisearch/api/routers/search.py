"""
Router for patient search session endpoints.
"""

from typing import Annotated

from fastapi import APIRouter, Depends, status

from clinisearch.api import schemas
from clinisearch.api.dependencies import (
    close_search_context,
    get_search_context,
    require_principal,
)
from clinisearch.context import SearchContext

router = APIRouter()


def _snapshot(context: SearchContext) -> schemas.SearchResultsResponse:
    session = context.session
    if not session.term:
        mode = "idle"
    else:
        mode = "numeric" if session.is_numeric else "text"
    return schemas.SearchResultsResponse(
        term=session.term,
        mode=mode,
        results=session.results,
        has_more=session.has_more_results,
        is_loading_more=session.is_loading_more,
        search_failed=session.last_search_failed,
    )


@router.post("/", response_model=schemas.SearchResultsResponse)
async def search_patients(
    request: schemas.SearchRequest,
    context: Annotated[SearchContext, Depends(get_search_context)],
):
    """
    Start a new search session. An empty term clears the session.
    """
    await context.search(request.term)
    return _snapshot(context)


@router.get("/", response_model=schemas.SearchResultsResponse)
async def get_search_results(
    context: Annotated[SearchContext, Depends(get_search_context)],
):
    """
    Current results of the caller's search session.
    """
    return _snapshot(context)


@router.post("/more", response_model=schemas.SearchResultsResponse)
async def load_more_results(
    context: Annotated[SearchContext, Depends(get_search_context)],
):
    """
    Append the next page from every strategy that still has results.
    """
    await context.load_more()
    return _snapshot(context)


@router.delete("/", response_model=schemas.SearchResultsResponse)
async def clear_search(
    context: Annotated[SearchContext, Depends(get_search_context)],
):
    context.session.clear()
    return _snapshot(context)


@router.delete("/context", status_code=status.HTTP_204_NO_CONTENT)
async def end_search_context(
    principal: Annotated[str, Depends(require_principal)],
):
    """
    Drop the caller's search session and cached records (logout).
    """
    close_search_context(principal)
