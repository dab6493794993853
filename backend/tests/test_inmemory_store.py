import pytest

from app.core.ports.store import DocumentStoreError, InvalidScopeError
from app.models.store.inmemory_store import InMemoryDocumentStore


@pytest.fixture
def store():
    s = InMemoryDocumentStore()
    s.create("docs")
    s.index_document("docs", {"device_id": "devA", "folder_hash": "h1", "file_name": "report.txt",
                              "extracted_text": "quarterly sales report", "subdirectory": "",
                              "timestamp": "2025-01-01T00:00:00+00:00"})
    s.index_document("docs", {"device_id": "devA", "folder_hash": "h1", "file_name": "notes.txt",
                              "extracted_text": "sales meeting notes", "subdirectory": "misc",
                              "timestamp": "2025-01-02T00:00:00+00:00"})
    s.index_document("docs", {"device_id": "devB", "folder_hash": "h2", "file_name": "todo.txt",
                              "extracted_text": "buy bolts", "subdirectory": "",
                              "timestamp": "2025-01-03T00:00:00+00:00"})
    return s


def test_count_and_delete_by_filter(store):
    assert store.count("docs", {"device_id": "devA", "folder_hash": "h1"}) == 2
    assert store.delete_by_filter("docs", {"device_id": "devA"}) == 2
    assert store.count("docs", {}) == 1


def test_unknown_filter_field_rejected(store):
    with pytest.raises(ValueError):
        store.count("docs", {"color": "red"})


def test_missing_scope_is_a_store_error(store):
    with pytest.raises(DocumentStoreError):
        store.count("nope", {})


def test_invalid_scope_name(store):
    with pytest.raises(InvalidScopeError):
        store.create("Bad Name")


def test_term_and_phrase_search(store):
    assert {h.source["file_name"] for h in store.search("docs", "sales")} == {"report.txt", "notes.txt"}
    assert [h.source["file_name"] for h in store.search("docs", "sales report", phrase=True)] == ["report.txt"]
    assert store.search("docs", "   ") == []


def test_summarize_owners(store):
    summary = {o.owner: o for o in store.summarize_owners("docs")}
    assert summary["devA"].file_count == 2
    assert summary["devA"].first_indexed == "2025-01-01T00:00:00+00:00"
    assert summary["devA"].last_indexed == "2025-01-02T00:00:00+00:00"
    assert summary["devB"].fingerprint == "h2"


def test_delete_scope(store):
    store.delete("docs")
    assert not store.exists("docs")
    assert store.list_scopes() == []
