from typer.testing import CliRunner

from app import cli

runner = CliRunner()


def test_hash_is_deterministic(tmp_path, make_tree):
    folder = make_tree(tmp_path / "devA", {"notes.txt": "n" * 50})
    result = runner.invoke(cli.app, ["hash", str(folder), "--verbose"])
    assert result.exit_code == 0
    assert "FILE:notes.txt:50:.txt" in result.output
    assert "Deterministic: yes" in result.output


def test_hash_missing_folder(tmp_path):
    result = runner.invoke(cli.app, ["hash", str(tmp_path / "nope")])
    assert result.exit_code == 1


def test_check_and_ledger_commands(container, uploads, make_tree, monkeypatch):
    monkeypatch.setattr(cli, "make_container", lambda: container)
    make_tree(uploads / "devA", {"a.txt": "one"})

    result = runner.invoke(cli.app, ["check", "devA"])
    assert result.exit_code == 0
    assert "Status:      new" in result.output

    report = container.pipeline.ingest(["devA/a.txt"], "directory-index")
    result = runner.invoke(cli.app, ["check", "devA"])
    assert "Status:      duplicate (ledger)" in result.output
    assert "Skip:        yes" in result.output

    key = f"{report.fingerprint}:devA:directory-index"
    assert key in runner.invoke(cli.app, ["ledger", "list"]).output
    assert runner.invoke(cli.app, ["ledger", "remove", key]).exit_code == 0
    assert "(ledger is empty)" in runner.invoke(cli.app, ["ledger", "list"]).output
    assert runner.invoke(cli.app, ["ledger", "remove", key]).exit_code == 1
