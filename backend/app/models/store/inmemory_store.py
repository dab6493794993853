from __future__ import annotations
from typing import Dict, List
import itertools, re, threading

from app.core.entities import OwnerSummary, SearchHit
from app.core.ports.store import (
    DocumentStoreError,
    IDocumentStore,
    validate_filters,
    validate_scope,
)

_TOKEN_RE = re.compile(r"\w+", re.UNICODE)
_SEARCH_FIELDS = ("file_name", "extracted_text", "subdirectory", "device_id")


def _tokens(text: str) -> set[str]:
    return {t.lower() for t in _TOKEN_RE.findall(text or "")}


def _matches(doc: dict, filters: Dict[str, str]) -> bool:
    return all(doc.get(k) == v for k, v in filters.items())


class InMemoryDocumentStore(IDocumentStore):
    """Process-local store used for local mode and tests. Scopes are dict keys."""

    def __init__(self) -> None:
        self.scopes: Dict[str, List[dict]] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def _docs(self, scope: str) -> List[dict]:
        try:
            return self.scopes[scope]
        except KeyError:
            raise DocumentStoreError(f"Scope not found: {scope}") from None

    def index_document(self, scope: str, doc: dict) -> str:
        with self._lock:
            docs = self._docs(scope)
            doc_id = str(next(self._ids))
            docs.append({"_id": doc_id, **doc})
            return doc_id

    def query(self, scope: str, filters: Dict[str, str], size: int = 1000) -> List[dict]:
        validate_filters(filters)
        with self._lock:
            hits = [d for d in self._docs(scope) if _matches(d, filters)]
        hits.sort(key=lambda d: d.get("timestamp") or "", reverse=True)
        return hits[:size]

    def count(self, scope: str, filters: Dict[str, str]) -> int:
        validate_filters(filters)
        with self._lock:
            return sum(1 for d in self._docs(scope) if _matches(d, filters))

    def delete_by_filter(self, scope: str, filters: Dict[str, str]) -> int:
        validate_filters(filters)
        with self._lock:
            docs = self._docs(scope)
            keep = [d for d in docs if not _matches(d, filters)]
            self.scopes[scope] = keep
            return len(docs) - len(keep)

    def exists(self, scope: str) -> bool:
        return scope in self.scopes

    def create(self, scope: str) -> None:
        validate_scope(scope)
        with self._lock:
            self.scopes.setdefault(scope, [])

    def delete(self, scope: str) -> None:
        with self._lock:
            self._docs(scope)
            del self.scopes[scope]

    def list_scopes(self) -> List[str]:
        return sorted(self.scopes)

    def search(self, scope: str, text: str, phrase: bool = False, size: int = 50) -> List[SearchHit]:
        needle = (text or "").strip().lower()
        terms = _tokens(needle)
        if not terms:
            return []
        hits: List[SearchHit] = []
        with self._lock:
            docs = list(self._docs(scope))
        for d in docs:
            fields = [str(d.get(f) or "") for f in _SEARCH_FIELDS]
            if phrase:
                matched = [f for f in fields if needle in f.lower()]
                score = float(len(matched))
            else:
                matched = [f for f in fields if terms & _tokens(f)]
                score = float(sum(len(terms & _tokens(f)) for f in matched))
            if matched:
                source = {k: v for k, v in d.items() if k != "_id"}
                hits.append(SearchHit(doc_id=d["_id"], score=score, source=source,
                                      highlight=[m[:200] for m in matched]))
        hits.sort(key=lambda h: h.score, reverse=True)
        return hits[:size]

    def summarize_owners(self, scope: str) -> List[OwnerSummary]:
        with self._lock:
            docs = list(self._docs(scope))
        grouped: Dict[str, List[dict]] = {}
        for d in docs:
            grouped.setdefault(d.get("device_id") or "", []).append(d)
        out: List[OwnerSummary] = []
        for owner, group in sorted(grouped.items(), key=lambda kv: -len(kv[1])):
            stamps = sorted(d.get("timestamp") or "" for d in group)
            out.append(OwnerSummary(
                owner=owner,
                file_count=len(group),
                first_indexed=stamps[0] or None,
                last_indexed=stamps[-1] or None,
                fingerprint=group[0].get("folder_hash"),
            ))
        return out

    def sample(self, scope: str, size: int = 10) -> List[dict]:
        with self._lock:
            return list(self._docs(scope)[:size])
