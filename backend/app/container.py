from __future__ import annotations
import logging
from dataclasses import dataclass
from threading import Lock
from typing import Optional

from fastapi import HTTPException, status

from app.core.ports.ledger import IFingerprintLedger
from app.core.ports.store import IDocumentStore, validate_scope
from app.core.services.crawler_service import CrawlerService
from app.core.services.duplicate_resolver import DuplicateResolver
from app.core.services.ingestion_pipeline import IngestionPipeline
from app.core.services.owner_service import OwnerService
from app.core.services.upload_service import UploadService
from app.models.extract.file_extractor import FileTextExtractor
from app.models.fingerprint.tree_fingerprint import StructuralFingerprint
from app.models.ledger.json_ledger import JsonFileLedger
from app.models.store.inmemory_store import InMemoryDocumentStore

logger = logging.getLogger("app.container")


class ScopeSelection:
    """The scope used when a request names none. Process-local."""

    def __init__(self, default: str):
        self._default = validate_scope(default)
        self._selected: Optional[str] = None
        self._lock = Lock()

    @property
    def selected(self) -> Optional[str]:
        with self._lock:
            return self._selected

    def select(self, scope: str) -> str:
        validate_scope(scope)
        with self._lock:
            self._selected = scope
        logger.info(f"🎯 Selected scope set to {scope}")
        return scope

    def clear_if(self, scope: str) -> None:
        with self._lock:
            if self._selected == scope:
                self._selected = None

    def resolve(self, scope: Optional[str] = None) -> str:
        if scope and scope.strip():
            return validate_scope(scope.strip())
        return self.selected or self._default


@dataclass
class AppContainer:
    settings: object
    ledger: IFingerprintLedger
    store: IDocumentStore
    fingerprinter: StructuralFingerprint
    extractor: FileTextExtractor
    resolver: DuplicateResolver
    pipeline: IngestionPipeline
    uploads: UploadService
    crawler: CrawlerService
    owners: OwnerService
    scopes: ScopeSelection


def build_store(settings) -> IDocumentStore:
    backend = settings.store_backend
    if backend == "memory":
        logger.info("🔌 Using in-memory document store")
        return InMemoryDocumentStore()
    if backend == "postgres":
        from app.models.store.postgres_store import PostgresDocumentStore
        logger.info(f"🔌 Using Postgres document store (schema={settings.db_schema})")
        return PostgresDocumentStore(schema=settings.db_schema)
    raise ValueError(f"Unknown STORE_BACKEND: {backend!r}")


def build_container(settings, store: IDocumentStore | None = None) -> AppContainer:
    """Wire ledger, store, fingerprinting, extraction and the services on top of them."""
    store = store or build_store(settings)
    ledger = JsonFileLedger(settings.ledger_path)
    fingerprinter = StructuralFingerprint()
    extractor = FileTextExtractor()
    resolver = DuplicateResolver(ledger, store, unknown_policy=settings.unknown_duplicate_policy)
    pipeline = IngestionPipeline(
        uploads_dir=settings.uploads_dir,
        store=store,
        extractor=extractor,
        fingerprinter=fingerprinter,
        resolver=resolver,
        extensions=settings.extensions,
    )
    logger.info(
        f"📂 Uploads: {settings.uploads_dir} | Ledger: {settings.ledger_path} | "
        f"Extensions: {','.join(settings.extensions)}"
    )
    return AppContainer(
        settings=settings,
        ledger=ledger,
        store=store,
        fingerprinter=fingerprinter,
        extractor=extractor,
        resolver=resolver,
        pipeline=pipeline,
        uploads=UploadService(settings.uploads_dir, fingerprinter, resolver),
        crawler=CrawlerService(settings.uploads_dir, fingerprinter, resolver, pipeline),
        owners=OwnerService(settings.uploads_dir, store, ledger),
        scopes=ScopeSelection(settings.default_scope),
    )


# Set by main.py at startup
_container: AppContainer | None = None


def set_container(container: AppContainer | None) -> None:
    global _container
    _container = container


def get_container() -> AppContainer:
    """FastAPI dependency for the wired services."""
    if _container is None:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail="Service not ready")
    return _container
