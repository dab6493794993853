from __future__ import annotations
import json, logging, os, tempfile, threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, List, Tuple

from app.core.entities import LedgerKey, LedgerRecord
from app.core.ports.ledger import IFingerprintLedger

logger = logging.getLogger("app.ledger")

# One lock per ledger file, shared by every JsonFileLedger pointing at it.
_LOCKS: Dict[str, threading.RLock] = {}
_LOCKS_GUARD = threading.Lock()


def _lock_for(path: Path) -> threading.RLock:
    key = str(path.resolve())
    with _LOCKS_GUARD:
        lock = _LOCKS.get(key)
        if lock is None:
            lock = _LOCKS[key] = threading.RLock()
        return lock


def _utcnow() -> str:
    return datetime.now(timezone.utc).isoformat()


def _record_from_json(key: LedgerKey, value: dict) -> LedgerRecord:
    return LedgerRecord(
        fingerprint=str(value.get("hash") or key.fingerprint),
        owner=str(value.get("deviceId") or key.owner),
        folder_name=str(value.get("folderName") or key.owner),
        scope=str(value.get("scope") or key.scope),
        completed_at=str(value.get("timestamp") or ""),
    )


def _record_to_json(rec: LedgerRecord) -> dict:
    return {
        "hash": rec.fingerprint,
        "deviceId": rec.owner,
        "folderName": rec.folder_name,
        "scope": rec.scope,
        "timestamp": rec.completed_at,
    }


class JsonFileLedger(IFingerprintLedger):
    """
    Completed-ingestion ledger stored as one JSON object:
        { "<fingerprint>:<owner>:<scope>": {hash, deviceId, folderName, scope, timestamp}, ... }

    Each call re-reads the file and every mutation rewrites it in full. Calls are
    serialised by a per-file lock and writes land through an atomic rename, so two
    ingestions finishing together in this process cannot drop each other's entry.
    Unscoped legacy keys ("<fingerprint>:<owner>") are carried through rewrites
    untouched but never match a lookup.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self._lock = _lock_for(self.path)

    # ----------------------------------------------------------
    # 💾 File I/O
    # ----------------------------------------------------------
    def _write_raw(self, data: dict) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, indent=2)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _read_raw(self) -> dict:
        if not self.path.exists():
            self._write_raw({})
            logger.info(f"📒 Created empty ledger at {self.path}")
            return {}
        try:
            with self.path.open("r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"❌ Ledger unreadable, treating as empty: {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.error(f"❌ Ledger is not a JSON object, treating as empty: {self.path}")
            return {}
        return data

    def _split(self, raw: dict) -> Tuple[Dict[LedgerKey, LedgerRecord], dict]:
        records: Dict[LedgerKey, LedgerRecord] = {}
        passthrough: dict = {}
        for k, v in raw.items():
            try:
                key = LedgerKey.parse(k)
            except ValueError:
                logger.debug("Ledger entry with legacy key kept as-is: %s", k)
                passthrough[k] = v
                continue
            if not isinstance(v, dict):
                logger.warning(f"⚠️ Skipping malformed ledger entry {k!r}")
                continue
            records[key] = _record_from_json(key, v)
        return records, passthrough

    def _flush(self, records: Dict[LedgerKey, LedgerRecord], passthrough: dict) -> None:
        data = dict(passthrough)
        for key, rec in records.items():
            data[str(key)] = _record_to_json(rec)
        self._write_raw(data)

    # ----------------------------------------------------------
    # 📒 Ledger API
    # ----------------------------------------------------------
    def load(self) -> Dict[LedgerKey, LedgerRecord]:
        with self._lock:
            records, _ = self._split(self._read_raw())
            return records

    def exists(self, fingerprint: str, owner: str, scope: str) -> bool:
        key = LedgerKey(fingerprint, owner, scope)
        found = key in self.load()
        logger.info(f"🔍 Ledger lookup key={key} exists={found}")
        return found

    def save(self, fingerprint: str, owner: str, folder_name: str, scope: str) -> bool:
        key = LedgerKey(fingerprint, owner, scope)
        with self._lock:
            records, passthrough = self._split(self._read_raw())
            if key in records:
                logger.info(f"📒 Ledger already holds {key}; nothing to save")
                return False
            records[key] = LedgerRecord(
                fingerprint=fingerprint,
                owner=owner,
                folder_name=folder_name,
                scope=scope,
                completed_at=_utcnow(),
            )
            self._flush(records, passthrough)
        logger.info(f"✅ Saved ledger entry for folder {folder_name} ({owner}) in scope {scope}")
        return True

    def remove(self, fingerprint: str, owner: str, scope: str) -> bool:
        return self.remove_key(str(LedgerKey(fingerprint, owner, scope)))

    def remove_key(self, raw_key: str) -> bool:
        with self._lock:
            raw = self._read_raw()
            if raw_key not in raw:
                return False
            del raw[raw_key]
            self._write_raw(raw)
        logger.info(f"🗑️ Removed ledger entry {raw_key}")
        return True

    def list_all(self) -> List[LedgerRecord]:
        return sorted(self.load().values(), key=lambda r: r.completed_at, reverse=True)
