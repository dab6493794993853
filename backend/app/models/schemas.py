from __future__ import annotations
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field


class LedgerEntry(BaseModel):
    key: str
    hash: str
    deviceId: str
    folderName: str
    scope: str
    timestamp: str


class LedgerListResponse(BaseModel):
    success: bool = True
    checksums: List[LedgerEntry]
    total: int


class ScopeRequest(BaseModel):
    index: str = Field(..., min_length=1)


class OwnerOut(BaseModel):
    deviceId: str
    fileCount: int
    firstIndexed: Optional[str] = None
    lastIndexed: Optional[str] = None
    folderHash: Optional[str] = None


class SearchRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Terms or phrase to look for")
    index: Optional[str] = None
    phrase: bool = False
    size: Optional[int] = Field(default=None, ge=1, le=500)


class SearchResult(BaseModel):
    id: str
    score: float
    source: Dict[str, Any]
    highlight: List[str] = Field(default_factory=list)


class SearchResponse(BaseModel):
    success: bool = True
    query: str
    total: int
    results: List[SearchResult]


class HealthResponse(BaseModel):
    status: str
    store_backend: str
    store_ok: bool = True
    detail: Optional[str] = None
