# backend/app/router/search_router.py
from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.container import AppContainer, get_container
from app.core.ports.store import DocumentStoreError, InvalidScopeError
from app.models.schemas import SearchRequest, SearchResponse, SearchResult

logger = logging.getLogger("app.search")

router = APIRouter(prefix="/api", tags=["search"])


@router.post("/search", response_model=SearchResponse)
def search(payload: SearchRequest, c: AppContainer = Depends(get_container)):
    query = payload.query.strip()
    if not query:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Query is required")
    try:
        scope = c.scopes.resolve(payload.index)
        if not c.store.exists(scope):
            return SearchResponse(query=query, total=0, results=[])
        hits = c.store.search(scope, query, phrase=payload.phrase, size=payload.size or c.settings.search_size)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DocumentStoreError as e:
        logger.error(f"Search error: {e}")
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))

    results = [SearchResult(id=h.doc_id, score=h.score, source=h.source, highlight=h.highlight) for h in hits]
    return SearchResponse(query=query, total=len(results), results=results)
