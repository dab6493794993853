# backend/app/models/ingest_model.py
from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional


class IngestRequest(BaseModel):
    files: List[str] = Field(default_factory=list, description="Paths relative to the uploads folder")
    scope: Optional[str] = None


class DuplicateInfo(BaseModel):
    status: str
    source: str
    reason: str = ""


class IngestResult(BaseModel):
    success: bool
    owner: str
    scope: str
    fingerprint: Optional[str] = None
    status: str
    message: str = ""

    processed: int
    failed: int
    missing: int
    total: int
    finalized: bool
    duration_sec: float
    duplicate: Optional[DuplicateInfo] = None
    errors: List[str] = Field(default_factory=list)

    @classmethod
    def from_report(cls, report) -> "IngestResult":
        dup = report.duplicate
        return cls(
            success=report.success,
            owner=report.owner,
            scope=report.scope,
            fingerprint=report.fingerprint,
            status=report.status,
            message=report.message,
            processed=report.processed,
            failed=report.failed,
            missing=report.missing,
            total=report.total,
            finalized=report.finalized,
            duration_sec=report.duration_sec,
            duplicate=DuplicateInfo(status=dup.status.value, source=dup.source, reason=dup.reason) if dup else None,
            errors=list(report.errors),
        )


class UploadResponse(BaseModel):
    success: bool = True
    message: str = "Upload successful"
    tree: Dict[str, Any]
    folderHash: str
    deviceId: str
    alreadyExists: bool
    duplicate: DuplicateInfo
    fileCount: int


class ScanRequest(BaseModel):
    forceReindex: bool = False
    scope: Optional[str] = None


class ScannedFolderOut(BaseModel):
    name: str
    folderHash: Optional[str] = None
    fileCount: int
    supportedFileCount: int
    alreadyExists: bool
    category: str
    reconciled: bool = False
    error: Optional[str] = None


class ScanResponse(BaseModel):
    success: bool = True
    scope: str
    folders: List[ScannedFolderOut]


class CrawlRequest(BaseModel):
    folders: List[str]
    scope: Optional[str] = None


class CrawlResponse(BaseModel):
    success: bool
    scope: str
    indexedFolders: int
    results: List[IngestResult]
