# backend/app/router/ledger_router.py
from __future__ import annotations
import logging
from urllib.parse import unquote

from fastapi import APIRouter, Depends, HTTPException, status

from app.container import AppContainer, get_container
from app.models.schemas import LedgerEntry, LedgerListResponse

logger = logging.getLogger("app.ledger")

router = APIRouter(prefix="/api/checksums", tags=["ledger"])


@router.get("", response_model=LedgerListResponse)
def list_checksums(c: AppContainer = Depends(get_container)):
    """Completed ingestions, newest first."""
    entries = [
        LedgerEntry(
            key=str(rec.key),
            hash=rec.fingerprint,
            deviceId=rec.owner,
            folderName=rec.folder_name,
            scope=rec.scope,
            timestamp=rec.completed_at,
        )
        for rec in c.ledger.list_all()
    ]
    return LedgerListResponse(checksums=entries, total=len(entries))


@router.delete("/{key:path}")
def delete_checksum(key: str, c: AppContainer = Depends(get_container)):
    raw_key = unquote(key)
    if not c.ledger.remove_key(raw_key):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Checksum not found")
    return {"success": True, "message": "Checksum deleted successfully"}
