# backend/app/router/crawler_router.py
from __future__ import annotations
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.container import AppContainer, get_container
from app.core.entities import IngestionReport
from app.core.ports.store import InvalidScopeError
from app.models.ingest_model import (
    CrawlRequest,
    CrawlResponse,
    IngestResult,
    ScannedFolderOut,
    ScanRequest,
    ScanResponse,
)
from app.router.ingest_router import event_stream_response, wants_event_stream

logger = logging.getLogger("app.crawler")

router = APIRouter(prefix="/api/crawler", tags=["crawler"])


@router.post("/scan", response_model=ScanResponse)
def scan(payload: ScanRequest, c: AppContainer = Depends(get_container)):
    try:
        scope = c.scopes.resolve(payload.scope)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    folders = c.crawler.scan(scope, force_reindex=payload.forceReindex)
    return ScanResponse(
        scope=scope,
        folders=[
            ScannedFolderOut(
                name=f.name,
                folderHash=f.fingerprint,
                fileCount=f.file_count,
                supportedFileCount=f.supported_file_count,
                alreadyExists=f.already_exists,
                category=f.category,
                reconciled=f.reconciled,
                error=f.error,
            )
            for f in folders
        ],
    )


@router.post("/crawl", response_model=CrawlResponse)
def crawl(payload: CrawlRequest, request: Request, c: AppContainer = Depends(get_container)):
    if not payload.folders:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No folders selected")
    try:
        scope = c.scopes.resolve(payload.scope)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if wants_event_stream(request):
        return event_stream_response(c.crawler.crawl_stream(payload.folders, scope))

    results = [
        IngestResult.from_report(item)
        for item in c.crawler.crawl_stream(payload.folders, scope)
        if isinstance(item, IngestionReport)
    ]
    indexed = sum(1 for r in results if r.success)
    logger.info(f"🕷️ Crawl finished | scope={scope} | folders={len(payload.folders)} | indexed={indexed}")
    return CrawlResponse(success=True, scope=scope, indexedFolders=indexed, results=results)
