import json

from app.core.ports.store import DocumentStoreError

SCOPE = "directory-index"


def _upload(client, files):
    return client.post(
        "/upload",
        files=[("files", (rel.rsplit("/", 1)[-1], data, "application/octet-stream")) for rel, data in files.items()],
        data={"relativePaths": json.dumps(list(files))},
    )


def _sse_payloads(response):
    return [json.loads(line[len("data: "):]) for line in response.text.splitlines() if line.startswith("data: ")]


def test_health(client):
    assert client.get("/health").json()["status"] == "ok"
    ready = client.get("/health/ready").json()
    assert ready["status"] == "ready"
    assert ready["store_backend"] == "memory"


def test_root_lists_endpoints(client):
    body = client.get("/").json()
    assert body["selected_index"] == SCOPE
    assert body["endpoints"]["search"] == "/api/search"


def test_upload_then_ingest_then_search(client, uploads):
    up = _upload(client, {"devA/notes.txt": b"quarterly sales figures", "devA/sub/info.csv": b"a,b\n1,2\n"})
    assert up.status_code == 200
    body = up.json()
    assert body["deviceId"] == "devA"
    assert body["alreadyExists"] is False
    assert body["duplicate"]["status"] == "new"

    res = client.post("/ingest", json={"files": ["devA/notes.txt", "devA/sub/info.csv"]})
    assert res.status_code == 200
    result = res.json()
    assert result["success"] is True
    assert result["status"] == "completed"
    assert result["processed"] == 2
    assert result["fingerprint"] == body["folderHash"]

    hits = client.post("/api/search", json={"query": "quarterly"}).json()
    assert hits["total"] == 1
    assert hits["results"][0]["source"]["file_name"] == "notes.txt"

    again = client.post("/ingest", json={"files": ["devA/notes.txt"]}).json()
    assert again["status"] == "skipped"
    assert again["success"] is False


def test_upload_rejects_mismatched_paths(client):
    res = client.post(
        "/upload",
        files=[("files", ("a.txt", b"x", "text/plain"))],
        data={"relativePaths": "[]"},
    )
    assert res.status_code == 400


def test_ingest_streams_progress(client, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one", "b.txt": "two"})
    res = client.post(
        "/ingest",
        json={"files": ["devA/a.txt", "devA/b.txt"]},
        headers={"Accept": "text/event-stream"},
    )
    assert res.status_code == 200
    assert res.headers["content-type"].startswith("text/event-stream")
    events = _sse_payloads(res)
    assert events[0]["message"] == "Starting ingestion..."
    assert {"message", "current", "total", "progress"} <= set(events[1])
    assert events[-1]["done"] is True
    assert events[-1]["result"]["processed"] == 2


def test_ingest_missing_folder_is_400(client, uploads):
    res = client.post("/ingest", json={"files": ["ghost/a.txt"]})
    assert res.status_code == 400


def test_ingest_requires_files(client):
    assert client.post("/ingest", json={"files": []}).status_code == 400


def test_checksums_list_and_delete(client, container, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one"})
    report = container.pipeline.ingest(["devA/a.txt"], SCOPE)

    listing = client.get("/api/checksums").json()
    assert listing["total"] == 1
    entry = listing["checksums"][0]
    assert entry["key"] == f"{report.fingerprint}:devA:{SCOPE}"
    assert entry["deviceId"] == "devA"

    assert client.delete(f"/api/checksums/{entry['key']}").status_code == 200
    assert client.get("/api/checksums").json()["total"] == 0
    assert client.delete(f"/api/checksums/{entry['key']}").status_code == 404


def test_index_management(client):
    assert client.post("/api/indices", json={"index": "archive"}).status_code == 200
    assert client.post("/api/indices", json={"index": "archive"}).status_code == 400
    assert client.post("/api/indices", json={"index": "Not Valid"}).status_code == 400
    assert "archive" in client.get("/api/indices").json()["indices"]

    assert client.post("/api/selected-index", json={"index": "archive"}).json()["selectedIndex"] == "archive"
    assert client.get("/api/selected-index").json()["effectiveIndex"] == "archive"

    assert client.delete("/api/indices/archive").status_code == 200
    assert client.get("/api/selected-index").json()["selectedIndex"] is None
    assert client.delete("/api/indices/archive").status_code == 404


def test_index_documents_sample(client, container, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one"})
    container.pipeline.ingest(["devA/a.txt"], SCOPE)
    docs = client.get(f"/api/indices/{SCOPE}/documents").json()["documents"]
    assert docs[0]["file_name"] == "a.txt"


def test_devices(client, container, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one", "b.txt": "two"})
    container.pipeline.ingest(["devA/a.txt", "devA/b.txt"], SCOPE)

    devices = client.get("/api/devices").json()
    assert devices["devices"][0]["deviceId"] == "devA"
    assert devices["devices"][0]["fileCount"] == 2
    assert client.get("/api/devices/devA/files").json()["total"] == 2

    # deleting requires an explicit index when none is selected
    assert client.delete("/api/devices/devA").status_code == 400
    deleted = client.delete("/api/devices/devA", params={"index": SCOPE}).json()
    assert deleted["deletedCount"] == 2
    assert deleted["ledgerEntriesRemoved"] == 1

    assert client.delete("/api/devices/devA/cleanup").json()["success"] is True
    assert not (uploads / "devA").exists()


def test_crawler_scan_and_crawl(client, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one"})
    make_tree(uploads / "devB", {"pic.png": "x"})

    scan = client.post("/api/crawler/scan", json={}).json()
    categories = {f["name"]: f["category"] for f in scan["folders"]}
    assert categories == {"devA": "new", "devB": "neglected"}

    crawl = client.post("/api/crawler/crawl", json={"folders": ["devA"]}).json()
    assert crawl["indexedFolders"] == 1

    scan = client.post("/api/crawler/scan", json={}).json()
    assert {f["name"]: f["category"] for f in scan["folders"]}["devA"] == "existing"


def test_crawler_crawl_streams(client, uploads, make_tree):
    make_tree(uploads / "devA", {"a.txt": "one"})
    res = client.post(
        "/api/crawler/crawl",
        json={"folders": ["devA", "ghost"]},
        headers={"Accept": "text/event-stream"},
    )
    events = _sse_payloads(res)
    assert any(e.get("folder") == "devA" for e in events)
    assert any(e.get("message") == "Folder not found: ghost" for e in events)
    assert sum(1 for e in events if e.get("done")) == 1


def test_search_store_failure_is_502(client, container, monkeypatch):
    container.store.create(SCOPE)

    def boom(*args, **kwargs):
        raise DocumentStoreError("backend down")

    monkeypatch.setattr(container.store, "search", boom)
    assert client.post("/api/search", json={"query": "x"}).status_code == 502


def test_search_unknown_scope_is_empty(client):
    body = client.post("/api/search", json={"query": "x", "index": "nothing-here"}).json()
    assert body["total"] == 0


def test_convert_file_preview(client):
    res = client.post(
        "/api/convert-file",
        files={"file": ("data.csv", b"a,b\n1,2\n", "text/csv")},
    )
    body = res.json()
    assert body["fileType"] == ".csv"
    assert body["originalContent"] == "a,b\n1,2\n"
    assert "| a | b |" in body["markdownContent"]


def test_upload_with_two_root_folders_is_400(client, uploads):
    res = _upload(client, {"devA/a.txt": b"x", "devB/b.txt": b"y"})
    assert res.status_code == 400
    assert not (uploads / "devA").exists()
