from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Dict, List

from app.core.entities import LedgerKey, LedgerRecord


class IFingerprintLedger(ABC):
    @abstractmethod
    def load(self) -> Dict[LedgerKey, LedgerRecord]: ...
    @abstractmethod
    def exists(self, fingerprint: str, owner: str, scope: str) -> bool: ...
    @abstractmethod
    def save(self, fingerprint: str, owner: str, folder_name: str, scope: str) -> bool:
        """Insert if absent. Returns True when a new record was written."""
        ...
    @abstractmethod
    def remove(self, fingerprint: str, owner: str, scope: str) -> bool: ...
    @abstractmethod
    def remove_key(self, raw_key: str) -> bool: ...
    @abstractmethod
    def list_all(self) -> List[LedgerRecord]:
        """Newest first."""
        ...
