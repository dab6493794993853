from __future__ import annotations
from abc import ABC, abstractmethod
from pathlib import Path


class ITextExtractor(ABC):
    @abstractmethod
    def extract(self, path: str | Path) -> str:
        """Searchable text for a file. Must not raise for a supported extension."""
        ...
    @abstractmethod
    def read_raw(self, path: str | Path) -> str:
        """Original content stored next to the text; binaries get a marker string."""
        ...
