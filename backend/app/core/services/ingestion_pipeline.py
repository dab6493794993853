from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from pathlib import Path, PurePosixPath
from typing import Callable, Iterable, Iterator, List, Optional, Union

from app.core.entities import IndexedDocument, IngestionReport, ProgressEvent
from app.core.ports.extractor import ITextExtractor
from app.core.ports.fingerprint import IFingerprinter
from app.core.ports.store import IDocumentStore
from app.core.services.duplicate_resolver import DuplicateResolver

log = logging.getLogger("app.ingest")

PipelineItem = Union[ProgressEvent, IngestionReport]


# ================================================================
# Utility functions
# ================================================================
def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def owner_of(relative: str) -> str:
    parts = [p for p in PurePosixPath(relative.replace("\\", "/")).parts if p not in ("", ".", "/")]
    return parts[0] if parts else "unknown"


def list_eligible_files(folder: Path, extensions: Iterable[str]) -> List[Path]:
    exts = set(extensions)
    return sorted(p for p in folder.rglob("*") if p.is_file() and p.suffix.lower() in exts)


# ================================================================
# Pipeline
# ================================================================
class IngestionPipeline:
    """
    Ingests the files of one uploaded folder into a scope.

    Order within a pass: duplicate check, then one write per file in the given
    order, then the ledger finalize. The ledger is only finalized when at least
    one document was written, so a folder that failed entirely stays eligible.
    """

    def __init__(
        self,
        uploads_dir: str | Path,
        store: IDocumentStore,
        extractor: ITextExtractor,
        fingerprinter: IFingerprinter,
        resolver: DuplicateResolver,
        extensions: Iterable[str],
    ):
        self.uploads_dir = Path(uploads_dir)
        self.store = store
        self.extractor = extractor
        self.fingerprinter = fingerprinter
        self.resolver = resolver
        self.extensions = [e.lower() for e in extensions]

    def is_eligible(self, path: Path) -> bool:
        return path.suffix.lower() in self.extensions

    def build_document(self, path: Path, text: str, raw: Optional[str], fingerprint: str) -> IndexedDocument:
        full = path.resolve()
        try:
            parts = full.relative_to(self.uploads_dir.resolve()).parts
        except ValueError:
            parts = ()
        if len(parts) >= 2:
            owner, subdirectory = parts[0], "/".join(parts[1:-1])
        else:
            owner, subdirectory = "unknown", ""
        return IndexedDocument(
            owner=owner,
            subdirectory=subdirectory,
            full_path=str(full),
            file_name=full.name,
            extracted_text=text,
            raw_content=raw,
            fingerprint=fingerprint,
            indexed_at=_utcnow(),
        )

    def ensure_scope(self, scope: str) -> None:
        if not self.store.exists(scope):
            self.store.create(scope)
            log.info(f"📁 Created scope: {scope}")

    # ------------------------------------------------------------
    # 📥 Streaming ingestion
    # ------------------------------------------------------------
    def stream(self, files: List[str], scope: str, folder_label: Optional[str] = None) -> Iterator[PipelineItem]:
        """Yields progress events; the final item is always the IngestionReport."""
        start = time.time()
        total = len(files)
        owner = owner_of(files[0]) if files else "unknown"
        report = IngestionReport(owner=owner, scope=scope, fingerprint=None, status="empty", total=total)

        def event(message: str, current: int) -> ProgressEvent:
            return ProgressEvent(message=message, current=current, total=total, folder=folder_label)

        if not files:
            report.message = "No files selected for ingestion"
            yield report
            return

        yield event("Starting ingestion...", 0)

        try:
            self.ensure_scope(scope)
        except Exception as e:
            log.error(f"❌ Could not prepare scope {scope}: {e}")
            report.status, report.message = "failed", f"Failed to create index: {e}"
            yield event(f"Error creating index: {e}", 0)
            yield report
            return

        # Fingerprint the owner's folder; a missing folder aborts the pass.
        folder = self.uploads_dir / owner
        fingerprint = self.fingerprinter.compute_fingerprint(folder)
        report.fingerprint = fingerprint

        check = self.resolver.check(fingerprint, owner, scope)
        report.duplicate = check
        if self.resolver.resolve(check):
            log.info(f"⏭️ Skipping {owner}: already ingested into {scope} ({check.source})")
            report.status = "skipped"
            report.message = "This folder has already been processed. Duplicate folders are not allowed."
            report.duration_sec = round(time.time() - start, 3)
            yield event("Folder already processed - skipping", total)
            yield report
            return

        processed = failed = missing = 0
        for i, rel in enumerate(files, 1):
            path = self.uploads_dir / rel
            if not path.is_file():
                missing += 1
                log.warning(f"⚠️ File not found: {path}")
                yield event(f"File not found: {rel}", processed)
                continue
            if not self.is_eligible(path):
                missing += 1
                yield event(f"Unsupported file type: {rel}", processed)
                continue
            try:
                log.info(f"Processing file {i}/{total}: {rel}")
                text = self.extractor.extract(path)
                raw = self.extractor.read_raw(path)
                doc = self.build_document(path, text, raw, fingerprint)
                self.store.index_document(scope, doc.to_source())
                processed += 1
                yield event(f"Indexed: {rel}", processed)
            except Exception as e:
                failed += 1
                report.errors.append(f"{rel}: {e}")
                log.error(f"❌ Error processing {rel}: {e}")
                yield event(f"Error processing {rel}: {e}", processed)

        report.processed, report.failed, report.missing = processed, failed, missing
        report.duration_sec = round(time.time() - start, 3)

        if processed > 0:
            self.resolver.finalize(fingerprint, owner, owner, scope, processed)
            report.finalized = True
            report.status = "completed" if processed == total else "partial"
            report.message = (
                f"Successfully ingested {processed}/{total} files in {report.duration_sec:.2f} seconds"
            )
        else:
            report.status = "failed"
            report.message = f"No files were indexed ({failed} failed, {missing} missing); folder remains eligible"

        log.info(
            "📥 Ingest summary | owner=%s | scope=%s | processed=%d | failed=%d | missing=%d | took=%.3fs",
            owner, scope, processed, failed, missing, report.duration_sec,
        )
        yield event(report.message, total)
        yield report

    def ingest(
        self,
        files: List[str],
        scope: str,
        on_progress: Optional[Callable[[ProgressEvent], None]] = None,
    ) -> IngestionReport:
        for item in self.stream(files, scope):
            if isinstance(item, IngestionReport):
                return item
            if on_progress:
                on_progress(item)
        raise RuntimeError("ingestion stream ended without a report")

    def folder_files(self, folder: str) -> List[str]:
        root = self.uploads_dir / folder
        return [p.relative_to(self.uploads_dir).as_posix() for p in list_eligible_files(root, self.extensions)]

    def stream_folder(self, folder: str, scope: str) -> Iterator[PipelineItem]:
        return self.stream(self.folder_files(folder), scope, folder_label=folder)
