from __future__ import annotations
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


@dataclass(frozen=True)
class LedgerKey:
    fingerprint: str
    owner: str
    scope: str

    def __str__(self) -> str:
        return f"{self.fingerprint}:{self.owner}:{self.scope}"

    @classmethod
    def parse(cls, raw: str) -> "LedgerKey":
        """
        Split "<fingerprint>:<owner>:<scope>". Fingerprints are hex and scopes
        never contain ':', so the owner is whatever lies between the first and
        the last colon.
        """
        fingerprint, sep, rest = raw.partition(":")
        owner, sep2, scope = rest.rpartition(":")
        if not (sep and sep2 and fingerprint and owner and scope):
            raise ValueError(f"Not a scoped ledger key: {raw!r}")
        return cls(fingerprint=fingerprint, owner=owner, scope=scope)


@dataclass(frozen=True)
class LedgerRecord:
    fingerprint: str
    owner: str
    folder_name: str
    scope: str
    completed_at: str  # ISO-8601, UTC

    @property
    def key(self) -> LedgerKey:
        return LedgerKey(self.fingerprint, self.owner, self.scope)


@dataclass(frozen=True)
class IndexedDocument:
    owner: str
    subdirectory: str
    full_path: str
    file_name: str
    extracted_text: str
    raw_content: Optional[str]
    fingerprint: str
    indexed_at: str

    def to_source(self) -> dict:
        # field names of the search index schema
        return {
            "device_id": self.owner,
            "subdirectory": self.subdirectory,
            "full_path": self.full_path,
            "file_name": self.file_name,
            "extracted_text": self.extracted_text,
            "html_content": self.raw_content,
            "folder_hash": self.fingerprint,
            "timestamp": self.indexed_at,
        }


class DuplicateStatus(str, Enum):
    DUPLICATE = "duplicate"
    NEW = "new"
    UNKNOWN = "unknown"


@dataclass(frozen=True)
class DuplicateCheck:
    status: DuplicateStatus
    source: str = "none"  # ledger | index | none | reconciled
    reason: str = ""

    @property
    def is_duplicate(self) -> bool:
        return self.status is DuplicateStatus.DUPLICATE


@dataclass(frozen=True)
class ProgressEvent:
    message: str
    current: int
    total: int
    folder: Optional[str] = None

    @property
    def progress(self) -> int:
        if self.total <= 0:
            return 100
        return round(self.current / self.total * 100)

    def as_dict(self) -> dict:
        out = {
            "message": self.message,
            "current": self.current,
            "total": self.total,
            "progress": self.progress,
        }
        if self.folder is not None:
            out["folder"] = self.folder
        return out


@dataclass
class IngestionReport:
    owner: str
    scope: str
    fingerprint: Optional[str]
    status: str  # completed | partial | failed | skipped | empty
    total: int
    processed: int = 0
    failed: int = 0
    missing: int = 0
    duration_sec: float = 0.0
    finalized: bool = False
    duplicate: Optional[DuplicateCheck] = None
    message: str = ""
    errors: List[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        return self.status in ("completed", "partial")


@dataclass(frozen=True)
class SearchHit:
    doc_id: str
    score: float
    source: dict
    highlight: List[str]


@dataclass(frozen=True)
class OwnerSummary:
    owner: str
    file_count: int
    first_indexed: Optional[str]
    last_indexed: Optional[str]
    fingerprint: Optional[str]
