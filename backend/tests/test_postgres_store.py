from app.models.store.postgres_store import PostgresDocumentStore, clean_value


def test_clean_value_strips_nul():
    assert clean_value("PK\x03\x04\x00\x00data") == "PK\x03\x04data"
    assert clean_value(None) is None
    assert clean_value(3) == 3


def test_index_document_sends_clean_text(monkeypatch):
    store = PostgresDocumentStore(schema="ingest")
    sent = {}

    def fake_run(stmt, params=(), *, fetch="none"):
        sent["params"] = params
        return {"id": 7}

    monkeypatch.setattr(store, "_run", fake_run)
    doc_id = store.index_document("docs", {
        "device_id": "devA",
        "file_name": "book.xls",
        "full_path": "/u/devA/book.xls",
        "extracted_text": "a\x00b",
        "html_content": "[Binary XLS file - 3 bytes]",
    })

    assert doc_id == "7"
    assert "a\x00b" not in sent["params"]
    assert "ab" in sent["params"]
    assert not any("\x00" in p for p in sent["params"] if isinstance(p, str))
