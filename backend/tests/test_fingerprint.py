import hashlib

import pytest

from app.models.fingerprint.tree_fingerprint import StructuralFingerprint


@pytest.fixture
def fp() -> StructuralFingerprint:
    return StructuralFingerprint()


@pytest.fixture
def dev_a(tmp_path, make_tree):
    return make_tree(tmp_path / "devA", {"notes.txt": "n" * 50, "sub/info.csv": "c" * 20})


def test_tokens_are_sorted_and_relative(fp, dev_a):
    assert fp.describe(dev_a) == [
        "FILE:notes.txt:50:.txt",
        "DIR:sub",
        "FILE:sub/info.csv:20:.csv",
    ]


def test_digest_is_sha256_of_token_stream(fp, dev_a):
    expected = hashlib.sha256("FILE:notes.txt:50:.txtDIR:subFILE:sub/info.csv:20:.csv".encode()).hexdigest()
    assert fp.compute_fingerprint(dev_a) == expected


def test_repeated_calls_agree(fp, dev_a):
    first, second, match = fp.verify_stable(dev_a)
    assert match
    assert first == second
    assert len(first) == 64


def test_resize_changes_digest_and_revert_restores_it(fp, dev_a):
    d1 = fp.compute_fingerprint(dev_a)
    (dev_a / "notes.txt").write_text("n" * 51)
    d2 = fp.compute_fingerprint(dev_a)
    assert d2 != d1
    (dev_a / "notes.txt").write_text("n" * 50)
    assert fp.compute_fingerprint(dev_a) == d1


def test_content_change_with_same_size_is_not_detected(fp, dev_a):
    d1 = fp.compute_fingerprint(dev_a)
    (dev_a / "notes.txt").write_text("x" * 50)
    assert fp.compute_fingerprint(dev_a) == d1


def test_adding_and_removing_files_changes_digest(fp, dev_a):
    d1 = fp.compute_fingerprint(dev_a)
    (dev_a / "extra.html").write_text("<p>hi</p>")
    d_added = fp.compute_fingerprint(dev_a)
    assert d_added != d1
    (dev_a / "extra.html").unlink()
    (dev_a / "sub" / "info.csv").unlink()
    assert fp.compute_fingerprint(dev_a) not in (d1, d_added)


def test_empty_subdirectory_counts(fp, dev_a):
    d1 = fp.compute_fingerprint(dev_a)
    (dev_a / "empty").mkdir()
    assert fp.compute_fingerprint(dev_a) != d1


def test_renaming_root_keeps_digest(fp, dev_a, tmp_path):
    d1 = fp.compute_fingerprint(dev_a)
    renamed = dev_a.rename(tmp_path / "devB")
    assert fp.compute_fingerprint(renamed) == d1


def test_extension_case_is_normalised(fp, tmp_path, make_tree):
    upper = make_tree(tmp_path / "a", {"x.TXT": "abc"})
    assert fp.describe(upper) == ["FILE:x.TXT:3:.txt"]


def test_missing_root_raises(fp, tmp_path):
    with pytest.raises(FileNotFoundError):
        fp.compute_fingerprint(tmp_path / "nope")


def test_file_root_raises(fp, tmp_path):
    f = tmp_path / "file.txt"
    f.write_text("x")
    with pytest.raises(NotADirectoryError):
        fp.compute_fingerprint(f)


def test_symlinked_directories_are_not_followed(fp, dev_a):
    d1 = fp.compute_fingerprint(dev_a)
    (dev_a / "sub" / "loop").symlink_to(dev_a, target_is_directory=True)
    assert fp.compute_fingerprint(dev_a) == d1
    assert "DIR:sub/loop" not in fp.describe(dev_a)
