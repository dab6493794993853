from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator, List, Optional

from app.core.entities import IngestionReport, ProgressEvent
from app.core.ports.fingerprint import IFingerprinter
from app.core.services.duplicate_resolver import DuplicateResolver
from app.core.services.ingestion_pipeline import IngestionPipeline, PipelineItem
from app.core.services.upload_service import TEMP_PREFIX

log = logging.getLogger("app.crawler")


@dataclass
class ScannedFolder:
    name: str
    fingerprint: Optional[str]
    file_count: int
    supported_file_count: int
    already_exists: bool
    category: str  # new | existing | neglected | error
    reconciled: bool = False
    error: Optional[str] = None


@dataclass
class CrawlSummary:
    reports: List[IngestionReport] = field(default_factory=list)

    @property
    def indexed_folders(self) -> int:
        return sum(1 for r in self.reports if r.success)


class CrawlerService:
    """
    Scans the uploads folder for owner folders and ingests selected ones.

    The scan is the repair path: a ledger entry claiming a folder is indexed is
    verified against the scope, and dropped if no document backs it.
    """

    def __init__(
        self,
        uploads_dir: str | Path,
        fingerprinter: IFingerprinter,
        resolver: DuplicateResolver,
        pipeline: IngestionPipeline,
    ):
        self.uploads_dir = Path(uploads_dir)
        self.fingerprinter = fingerprinter
        self.resolver = resolver
        self.pipeline = pipeline

    def _folders(self) -> List[Path]:
        if not self.uploads_dir.exists():
            return []
        return sorted(
            p for p in self.uploads_dir.iterdir()
            if p.is_dir() and not p.name.startswith(TEMP_PREFIX)
        )

    def scan_folder(self, folder: Path, scope: str, force_reindex: bool = False) -> ScannedFolder:
        try:
            files = [p for p in folder.rglob("*") if p.is_file()]
            supported = [p for p in files if self.pipeline.is_eligible(p)]
            fingerprint = self.fingerprinter.compute_fingerprint(folder)
        except OSError as e:
            log.error(f"❌ Could not scan {folder}: {e}")
            return ScannedFolder(folder.name, None, 0, 0, False, "error", error=str(e))

        reconciled = False
        exists = False
        if not force_reindex:
            check = self.resolver.reconcile(fingerprint, folder.name, scope)
            reconciled = check.source == "reconciled"
            exists = self.resolver.resolve(check)

        if exists:
            category = "existing"
        elif supported:
            category = "new"
        else:
            category = "neglected"
        return ScannedFolder(
            name=folder.name,
            fingerprint=fingerprint,
            file_count=len(files),
            supported_file_count=len(supported),
            already_exists=exists,
            category=category,
            reconciled=reconciled,
        )

    def scan(self, scope: str, force_reindex: bool = False) -> List[ScannedFolder]:
        results = [self.scan_folder(f, scope, force_reindex) for f in self._folders()]
        counts = {c: sum(1 for r in results if r.category == c) for c in ("new", "existing", "neglected", "error")}
        log.info(
            f"🔍 Scan of {self.uploads_dir}: {len(results)} folder(s) | new={counts['new']} "
            f"existing={counts['existing']} neglected={counts['neglected']} errors={counts['error']}"
        )
        return results

    def crawl_stream(self, folders: List[str], scope: str) -> Iterator[PipelineItem]:
        known = {p.name for p in self._folders()}
        total = len(folders)
        for i, name in enumerate(folders, 1):
            if name not in known:
                yield ProgressEvent(f"Folder not found: {name}", i, total, folder=name)
                continue
            yield ProgressEvent(f"Crawling folder {i}/{total}: {name}", i - 1, total, folder=name)
            try:
                yield from self.pipeline.stream_folder(name, scope)
            except OSError as e:
                log.error(f"❌ Crawl of {name} aborted: {e}")
                yield ProgressEvent(f"Error crawling {name}: {e}", i, total, folder=name)

    def crawl(self, folders: List[str], scope: str) -> CrawlSummary:
        summary = CrawlSummary()
        for item in self.crawl_stream(folders, scope):
            if isinstance(item, IngestionReport):
                summary.reports.append(item)
        return summary
