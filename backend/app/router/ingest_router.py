# backend/app/router/ingest_router.py
from __future__ import annotations

import json
import os
import shutil
import sys
import tempfile
import traceback
from typing import Iterable, Iterator, List

from fastapi import APIRouter, Depends, File, Form, HTTPException, Request, UploadFile, status
from fastapi.responses import StreamingResponse

from app.container import AppContainer, get_container
from app.core.entities import IngestionReport, ProgressEvent
from app.core.ports.store import InvalidScopeError
from app.models.ingest_model import DuplicateInfo, IngestRequest, IngestResult, UploadResponse

import logging
logger = logging.getLogger("app.ingest")

router = APIRouter(tags=["ingest"])


def _http_500(action: str, e: Exception) -> HTTPException:
    exc_type, exc_obj, tb = sys.exc_info()
    tb_frame = traceback.extract_tb(tb)[-1] if tb else None
    func_name = tb_frame.name if tb_frame else "?"
    line_no = tb_frame.lineno if tb_frame else "?"
    error_type = exc_type.__name__ if exc_type else type(e).__name__

    logger.error(
        f"Unhandled Exception [{error_type}] in {func_name}() line {line_no}\n"
        f"Message: {e}\n"
        f"Traceback:\n{''.join(traceback.format_exception(exc_type, exc_obj, tb))}"
    )
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{action} failed: {error_type} in {func_name}() line {line_no}",
    )


def wants_event_stream(request: Request) -> bool:
    return "text/event-stream" in request.headers.get("accept", "")


def sse_events(items: Iterable[ProgressEvent | IngestionReport]) -> Iterator[str]:
    """Server-sent events: one `data:` line per progress event, then each report."""
    try:
        for item in items:
            if isinstance(item, IngestionReport):
                payload = {"done": True, "result": IngestResult.from_report(item).model_dump()}
            else:
                payload = item.as_dict()
            yield f"data: {json.dumps(payload)}\n\n"
    except Exception as e:
        # headers are already sent; report the failure in-band
        logger.error(f"❌ Streaming ingestion failed: {e}", exc_info=True)
        yield f"data: {json.dumps({'done': True, 'error': str(e)})}\n\n"


def event_stream_response(items: Iterable[ProgressEvent | IngestionReport]) -> StreamingResponse:
    return StreamingResponse(
        sse_events(items),
        media_type="text/event-stream",
        headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
    )


# ============================================================
# 📦 Upload
# ============================================================
@router.post("/upload", response_model=UploadResponse)
def upload_folder(
    files: List[UploadFile] = File(...),
    relativePaths: str = Form("[]"),
    scope: str | None = Form(None),
    c: AppContainer = Depends(get_container),
):
    try:
        paths = json.loads(relativePaths or "[]")
    except ValueError:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="relativePaths must be a JSON list")
    if not isinstance(paths, list) or len(paths) != len(files):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="relativePaths must list one path per uploaded file",
        )

    try:
        target = c.scopes.resolve(scope)
        result = c.uploads.receive(((str(p), f.file) for p, f in zip(paths, files)), target)
    except (ValueError, InvalidScopeError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _http_500("Upload", e)

    dup = result.duplicate
    return UploadResponse(
        tree=result.tree,
        folderHash=result.fingerprint,
        deviceId=result.owner,
        alreadyExists=result.already_exists,
        duplicate=DuplicateInfo(status=dup.status.value, source=dup.source, reason=dup.reason),
        fileCount=result.file_count,
    )


# ============================================================
# 📥 Ingest
# ============================================================
@router.post("/ingest", response_model=IngestResult)
def ingest(payload: IngestRequest, request: Request, c: AppContainer = Depends(get_container)):
    if not payload.files:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No files selected for ingestion")
    try:
        scope = c.scopes.resolve(payload.scope)
    except InvalidScopeError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    if wants_event_stream(request):
        return event_stream_response(c.pipeline.stream(payload.files, scope))

    try:
        report = c.pipeline.ingest(payload.files, scope)
    except FileNotFoundError as e:
        logger.error(f"Folder not found: {e}")
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except Exception as e:
        raise _http_500("Ingestion", e)

    logger.info(
        "✅ Ingestion done | owner=%s | scope=%s | status=%s | processed=%d/%d",
        report.owner, report.scope, report.status, report.processed, report.total,
    )
    return IngestResult.from_report(report)


# ============================================================
# 🔄 Conversion preview
# ============================================================
@router.post("/api/convert-file")
def convert_file(file: UploadFile = File(...), c: AppContainer = Depends(get_container)):
    suffix = os.path.splitext(file.filename or "")[1].lower()
    fd, tmp = tempfile.mkstemp(suffix=suffix)
    try:
        with os.fdopen(fd, "wb") as out:
            shutil.copyfileobj(file.file, out)
        original = c.extractor.read_raw(tmp)
        converted = c.extractor.extract(tmp)
    finally:
        try:
            os.unlink(tmp)
        except OSError as e:
            logger.warning(f"⚠️ Could not cleanup file: {e}")

    return {
        "success": True,
        "originalContent": original,
        "markdownContent": converted,
        "fileName": file.filename,
        "fileType": suffix,
    }
