# backend/app/router/owners_router.py
from __future__ import annotations
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, status

from app.container import AppContainer, get_container
from app.core.ports.store import DocumentStoreError, InvalidScopeError
from app.models.schemas import OwnerOut

logger = logging.getLogger("app.owners")

router = APIRouter(prefix="/api/devices", tags=["devices"])


def _scope(c: AppContainer, index: Optional[str]) -> str:
    try:
        return c.scopes.resolve(index)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))


@router.get("")
def list_devices(index: Optional[str] = None, c: AppContainer = Depends(get_container)):
    scope = _scope(c, index)
    try:
        if not c.store.exists(scope):
            return {"success": True, "devices": [], "total": 0}
        owners = c.owners.list_owners(scope)
    except DocumentStoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    devices = [
        OwnerOut(
            deviceId=o.owner,
            fileCount=o.file_count,
            firstIndexed=o.first_indexed,
            lastIndexed=o.last_indexed,
            folderHash=o.fingerprint,
        )
        for o in owners
    ]
    return {"success": True, "devices": devices, "total": len(devices)}


@router.get("/{owner}/files")
def list_device_files(owner: str, index: Optional[str] = None, c: AppContainer = Depends(get_container)):
    scope = _scope(c, index)
    try:
        files = c.owners.list_files(scope, owner) if c.store.exists(scope) else []
    except DocumentStoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {"success": True, "files": files, "total": len(files)}


@router.delete("/{owner}/cleanup")
def cleanup_device_folder(owner: str, c: AppContainer = Depends(get_container)):
    try:
        deleted, folder = c.owners.cleanup_folder(owner)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    if not deleted:
        return {"success": True, "message": "Folder does not exist or was already deleted", "folderPath": str(folder)}
    return {
        "success": True,
        "message": f"Physical folder for device {owner} deleted successfully",
        "folderPath": str(folder),
    }


@router.delete("/{owner}")
def delete_device(
    owner: str,
    index: Optional[str] = None,
    forget: bool = True,
    c: AppContainer = Depends(get_container),
):
    if not index and not c.scopes.selected:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Please specify a specific index to delete from",
        )
    scope = _scope(c, index)
    try:
        if not c.store.exists(scope):
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Index not found")
        deleted, forgotten = c.owners.delete_owner(scope, owner, forget=forget)
    except DocumentStoreError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return {
        "success": True,
        "message": f"Device {owner} deleted successfully",
        "deletedCount": deleted,
        "ledgerEntriesRemoved": forgotten,
    }
