# backend/app/router/indices_router.py
from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException, status

from app.container import AppContainer, get_container
from app.core.ports.store import DocumentStoreError, InvalidScopeError
from app.models.schemas import ScopeRequest

logger = logging.getLogger("app.indices")

router = APIRouter(prefix="/api", tags=["indices"])


def _store_unavailable(e: DocumentStoreError) -> HTTPException:
    logger.error(f"❌ Document store error: {e}")
    return HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))


@router.get("/selected-index")
def get_selected_index(c: AppContainer = Depends(get_container)):
    return {"success": True, "selectedIndex": c.scopes.selected, "effectiveIndex": c.scopes.resolve()}


@router.post("/selected-index")
def set_selected_index(payload: ScopeRequest, c: AppContainer = Depends(get_container)):
    try:
        selected = c.scopes.select(payload.index)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    return {"success": True, "selectedIndex": selected}


@router.get("/indices")
def list_indices(c: AppContainer = Depends(get_container)):
    try:
        return {"success": True, "indices": c.store.list_scopes()}
    except DocumentStoreError as e:
        raise _store_unavailable(e)


@router.post("/indices")
def create_index(payload: ScopeRequest, c: AppContainer = Depends(get_container)):
    try:
        if c.store.exists(payload.index):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Index already exists")
        c.store.create(payload.index)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DocumentStoreError as e:
        raise _store_unavailable(e)
    return {"success": True, "index": payload.index}


@router.delete("/indices/{scope}")
def delete_index(scope: str, c: AppContainer = Depends(get_container)):
    try:
        if not c.store.exists(scope):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Index not found")
        c.store.delete(scope)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DocumentStoreError as e:
        raise _store_unavailable(e)
    c.scopes.clear_if(scope)
    logger.info(f"Successfully deleted index: {scope}")
    return {"success": True, "index": scope}


@router.get("/indices/{scope}/documents")
def sample_documents(scope: str, size: int = 10, c: AppContainer = Depends(get_container)):
    try:
        if not c.store.exists(scope):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Index not found")
        return {"success": True, "documents": c.store.sample(scope, size=size)}
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except DocumentStoreError as e:
        raise _store_unavailable(e)
