from __future__ import annotations
import logging

from app.core.entities import DuplicateCheck, DuplicateStatus
from app.core.ports.ledger import IFingerprintLedger
from app.core.ports.store import IDocumentStore

logger = logging.getLogger("app.resolver")

POLICIES = ("ledger", "skip")


class DuplicateResolver:
    """
    Decides whether a folder (fingerprint + owner) was already ingested into a scope.

    Checks run in order and stop at the first positive answer:
      1. the local ledger (no remote call on a hit)
      2. the destination scope, for a document carrying both owner and fingerprint
      3. neither: the folder is new
    A failing store query yields UNKNOWN, which `should_skip` resolves with
    `unknown_policy`: "ledger" keeps the ledger's answer (proceed), "skip"
    refuses the ingestion.
    """

    def __init__(self, ledger: IFingerprintLedger, store: IDocumentStore, unknown_policy: str = "ledger"):
        if unknown_policy not in POLICIES:
            raise ValueError(f"unknown_policy must be one of {POLICIES}, got {unknown_policy!r}")
        self.ledger = ledger
        self.store = store
        self.unknown_policy = unknown_policy

    # ------------------------------------------------------
    # 🔎 Decision list
    # ------------------------------------------------------
    def _query_index(self, fingerprint: str, owner: str, scope: str) -> DuplicateCheck:
        try:
            if not self.store.exists(scope):
                return DuplicateCheck(DuplicateStatus.NEW, "none", f"scope {scope} does not exist yet")
            hits = self.store.count(scope, {"device_id": owner, "folder_hash": fingerprint})
        except Exception as e:
            logger.warning(f"⚠️ Index duplicate check failed for {owner} in {scope}; falling back to ledger: {e}")
            return DuplicateCheck(DuplicateStatus.UNKNOWN, "none", f"index query failed: {e}")

        if hits > 0:
            logger.info(f"🔁 Found {hits} indexed document(s) for {owner} with fingerprint {fingerprint} in {scope}")
            return DuplicateCheck(DuplicateStatus.DUPLICATE, "index", f"{hits} document(s) already indexed")
        return DuplicateCheck(DuplicateStatus.NEW, "none", "no ledger entry and no indexed documents")

    def check(self, fingerprint: str, owner: str, scope: str) -> DuplicateCheck:
        if self.ledger.exists(fingerprint, owner, scope):
            logger.info(f"🔁 Ledger marks {owner} ({fingerprint}) as ingested into {scope}")
            return DuplicateCheck(DuplicateStatus.DUPLICATE, "ledger", "folder recorded in ledger")
        return self._query_index(fingerprint, owner, scope)

    def resolve(self, result: DuplicateCheck) -> bool:
        if result.status is DuplicateStatus.DUPLICATE:
            return True
        if result.status is DuplicateStatus.NEW:
            return False
        # UNKNOWN: the ledger already said "not recorded"
        return self.unknown_policy == "skip"

    def should_skip(self, fingerprint: str, owner: str, scope: str) -> bool:
        return self.resolve(self.check(fingerprint, owner, scope))

    # ------------------------------------------------------
    # 🩺 Reconciliation (crawler scan)
    # ------------------------------------------------------
    def reconcile(self, fingerprint: str, owner: str, scope: str) -> DuplicateCheck:
        """
        Like `check`, but a ledger hit is verified against the scope. A ledger
        entry with no live document behind it is removed and the folder reported
        as new. If the verification query fails the ledger is trusted.
        """
        if not self.ledger.exists(fingerprint, owner, scope):
            return self._query_index(fingerprint, owner, scope)

        try:
            live = self.store.exists(scope) and self.store.count(
                scope, {"device_id": owner, "folder_hash": fingerprint}
            ) > 0
        except Exception as e:
            logger.warning(f"⚠️ Could not verify ledger entry for {owner} in {scope}; trusting ledger: {e}")
            return DuplicateCheck(DuplicateStatus.DUPLICATE, "ledger", "verification failed; ledger trusted")

        if live:
            return DuplicateCheck(DuplicateStatus.DUPLICATE, "ledger", "ledger entry verified against index")

        self.ledger.remove(fingerprint, owner, scope)
        logger.warning(f"🩺 Stale ledger entry for {owner} ({fingerprint}) in {scope} removed; folder is eligible again")
        return DuplicateCheck(DuplicateStatus.NEW, "reconciled", "stale ledger entry removed")

    # ------------------------------------------------------
    # ✅ Completion
    # ------------------------------------------------------
    def finalize(self, fingerprint: str, owner: str, folder_name: str, scope: str, indexed_count: int) -> bool:
        if indexed_count < 1:
            raise ValueError("finalize requires at least one indexed document")
        return self.ledger.save(fingerprint, owner, folder_name, scope)
