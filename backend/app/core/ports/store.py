from __future__ import annotations
from abc import ABC, abstractmethod
import re
from typing import Dict, List

from app.core.entities import OwnerSummary, SearchHit

# Fields a filter may match exactly.
FILTER_FIELDS = ("device_id", "folder_hash", "subdirectory", "file_name", "full_path")

_SCOPE_RE = re.compile(r"^[a-z0-9][a-z0-9_-]{0,62}$")


class DocumentStoreError(RuntimeError):
    """The search backend was unreachable or rejected a request."""


class InvalidScopeError(ValueError):
    pass


def validate_scope(scope: str) -> str:
    if not scope or not _SCOPE_RE.match(scope):
        raise InvalidScopeError(
            f"Invalid scope name {scope!r}: use lowercase letters, digits, '-' or '_'"
        )
    return scope


def validate_filters(filters: Dict[str, str]) -> Dict[str, str]:
    unknown = set(filters) - set(FILTER_FIELDS)
    if unknown:
        raise ValueError(f"Unsupported filter field(s): {sorted(unknown)}")
    return filters


class IDocumentStore(ABC):
    @abstractmethod
    def index_document(self, scope: str, doc: dict) -> str: ...
    @abstractmethod
    def query(self, scope: str, filters: Dict[str, str], size: int = 1000) -> List[dict]:
        """Exact-match filter, newest first."""
        ...
    @abstractmethod
    def count(self, scope: str, filters: Dict[str, str]) -> int: ...
    @abstractmethod
    def delete_by_filter(self, scope: str, filters: Dict[str, str]) -> int: ...
    @abstractmethod
    def exists(self, scope: str) -> bool: ...
    @abstractmethod
    def create(self, scope: str) -> None: ...
    @abstractmethod
    def delete(self, scope: str) -> None: ...
    @abstractmethod
    def list_scopes(self) -> List[str]: ...
    @abstractmethod
    def search(self, scope: str, text: str, phrase: bool = False, size: int = 50) -> List[SearchHit]: ...
    @abstractmethod
    def summarize_owners(self, scope: str) -> List[OwnerSummary]: ...
    @abstractmethod
    def sample(self, scope: str, size: int = 10) -> List[dict]: ...
