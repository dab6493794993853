import json
import threading

from app.core.entities import LedgerKey
from app.models.ledger.json_ledger import JsonFileLedger

FP = "a" * 64


def test_load_creates_empty_file(tmp_path):
    path = tmp_path / "ledger.json"
    ledger = JsonFileLedger(path)
    assert ledger.load() == {}
    assert json.loads(path.read_text()) == {}


def test_save_is_idempotent(tmp_path):
    ledger = JsonFileLedger(tmp_path / "ledger.json")
    assert ledger.save(FP, "devA", "devA", "directory-index") is True
    assert ledger.save(FP, "devA", "devA", "directory-index") is False
    assert len(ledger.list_all()) == 1


def test_round_trip_and_remove(tmp_path):
    ledger = JsonFileLedger(tmp_path / "ledger.json")
    ledger.save(FP, "devA", "devA", "directory-index")
    assert LedgerKey(FP, "devA", "directory-index") in ledger.load()
    assert ledger.exists(FP, "devA", "directory-index")
    assert not ledger.exists(FP, "devA", "other-index")

    assert ledger.remove(FP, "devA", "directory-index") is True
    assert not ledger.exists(FP, "devA", "directory-index")
    assert ledger.remove(FP, "devA", "directory-index") is False


def test_on_disk_shape(tmp_path):
    path = tmp_path / "ledger.json"
    JsonFileLedger(path).save(FP, "devA", "devA", "docs")
    data = json.loads(path.read_text())
    entry = data[f"{FP}:devA:docs"]
    assert entry["hash"] == FP
    assert entry["deviceId"] == "devA"
    assert entry["folderName"] == "devA"
    assert entry["scope"] == "docs"
    assert entry["timestamp"]


def test_entries_survive_new_instance(tmp_path):
    path = tmp_path / "ledger.json"
    JsonFileLedger(path).save(FP, "devA", "devA", "docs")
    assert JsonFileLedger(path).exists(FP, "devA", "docs")


def test_corrupt_file_reads_as_empty(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text("{not json")
    ledger = JsonFileLedger(path)
    assert ledger.load() == {}
    assert not ledger.exists(FP, "devA", "docs")


def test_non_object_file_reads_as_empty(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text("[1, 2, 3]")
    assert JsonFileLedger(path).load() == {}


def test_legacy_unscoped_keys_never_match_but_are_kept(tmp_path):
    path = tmp_path / "ledger.json"
    legacy = {f"{FP}:devA": {"hash": FP, "deviceId": "devA", "folderName": "devA", "timestamp": "2023-01-01"}}
    path.write_text(json.dumps(legacy))
    ledger = JsonFileLedger(path)

    assert not ledger.exists(FP, "devA", "directory-index")
    ledger.save(FP, "devA", "devA", "directory-index")

    data = json.loads(path.read_text())
    assert f"{FP}:devA" in data
    assert f"{FP}:devA:directory-index" in data
    assert ledger.remove_key(f"{FP}:devA") is True
    assert f"{FP}:devA" not in json.loads(path.read_text())


def test_list_all_newest_first(tmp_path):
    path = tmp_path / "ledger.json"
    path.write_text(json.dumps({
        f"{FP}:old:s": {"hash": FP, "deviceId": "old", "folderName": "old", "scope": "s",
                        "timestamp": "2024-01-01T00:00:00+00:00"},
        f"{FP}:new:s": {"hash": FP, "deviceId": "new", "folderName": "new", "scope": "s",
                        "timestamp": "2025-01-01T00:00:00+00:00"},
    }))
    owners = [r.owner for r in JsonFileLedger(path).list_all()]
    assert owners == ["new", "old"]


def test_concurrent_saves_keep_every_entry(tmp_path):
    path = tmp_path / "ledger.json"
    owners = [f"dev{i}" for i in range(20)]

    def finish(owner):
        JsonFileLedger(path).save(FP, owner, owner, "docs")

    threads = [threading.Thread(target=finish, args=(o,)) for o in owners]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    assert {r.owner for r in JsonFileLedger(path).list_all()} == set(owners)


def test_no_temp_files_left_behind(tmp_path):
    ledger = JsonFileLedger(tmp_path / "ledger.json")
    ledger.save(FP, "devA", "devA", "docs")
    ledger.remove(FP, "devA", "docs")
    assert [p.name for p in tmp_path.iterdir()] == ["ledger.json"]


def test_key_parse_keeps_colons_in_owner():
    key = LedgerKey.parse(f"{FP}:devA:2024:directory-index")
    assert key == LedgerKey(FP, "devA:2024", "directory-index")
    assert LedgerKey.parse(str(key)) == key


def test_owner_with_colon_round_trips(tmp_path):
    path = tmp_path / "ledger.json"
    ledger = JsonFileLedger(path)
    assert ledger.save(FP, "devA:2024", "devA:2024", "idx") is True
    stamp = ledger.list_all()[0].completed_at

    assert ledger.exists(FP, "devA:2024", "idx")
    assert ledger.save(FP, "devA:2024", "devA:2024", "idx") is False
    assert ledger.list_all()[0].completed_at == stamp
    assert JsonFileLedger(path).exists(FP, "devA:2024", "idx")
    assert ledger.remove(FP, "devA:2024", "idx") is True
