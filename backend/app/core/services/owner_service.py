from __future__ import annotations

import logging
import shutil
from pathlib import Path
from typing import List, Tuple

from app.core.entities import OwnerSummary
from app.core.ports.ledger import IFingerprintLedger
from app.core.ports.store import IDocumentStore

log = logging.getLogger("app.owners")


class OwnerService:
    """Per-owner views and bulk deletes over one scope."""

    def __init__(self, uploads_dir: str | Path, store: IDocumentStore, ledger: IFingerprintLedger):
        self.uploads_dir = Path(uploads_dir)
        self.store = store
        self.ledger = ledger

    def list_owners(self, scope: str) -> List[OwnerSummary]:
        return self.store.summarize_owners(scope)

    def list_files(self, scope: str, owner: str, size: int = 1000) -> List[dict]:
        return self.store.query(scope, {"device_id": owner}, size=size)

    def delete_owner(self, scope: str, owner: str, forget: bool = True) -> Tuple[int, int]:
        """
        Delete every document of `owner` in `scope`. With `forget`, the owner's
        ledger entries for that scope go too, so the folder can be ingested again.
        Returns (documents deleted, ledger entries removed).
        """
        deleted = self.store.delete_by_filter(scope, {"device_id": owner})
        forgotten = 0
        if forget:
            for rec in self.ledger.list_all():
                if rec.owner == owner and rec.scope == scope:
                    forgotten += int(self.ledger.remove(rec.fingerprint, rec.owner, rec.scope))
        log.info(f"🗑️ Owner {owner} removed from {scope}: documents={deleted} ledger_entries={forgotten}")
        return deleted, forgotten

    def cleanup_folder(self, owner: str) -> Tuple[bool, Path]:
        """Delete the owner's uploaded folder. Returns (deleted, path)."""
        folder = (self.uploads_dir / owner).resolve()
        if folder.parent != self.uploads_dir.resolve():
            raise ValueError(f"Invalid owner name: {owner!r}")
        if not folder.exists():
            return False, folder
        shutil.rmtree(folder)
        log.info(f"🧹 Deleted uploaded folder {folder}")
        return True, folder
