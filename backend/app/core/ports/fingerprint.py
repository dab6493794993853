from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path
from typing import List


class IFingerprinter(ABC):
    @abstractmethod
    def compute_fingerprint(self, root: str | Path) -> str: ...
    @abstractmethod
    def describe(self, root: str | Path) -> List[str]:
        """Ordered tokens that feed the digest, for inspection."""
        ...
