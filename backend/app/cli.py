"""
Operator commands for the folder fingerprint ledger.

Usage:
    python -m app.cli hash uploads/devA
    python -m app.cli check devA --scope directory-index
    python -m app.cli ledger list
    python -m app.cli ledger remove "<hash>:devA:directory-index"
"""
from __future__ import annotations
import logging
from pathlib import Path
from typing import Optional

import typer

from app.container import AppContainer, build_container
from app.db.config import settings
from app.db.session import DatabasePool
from app.models.fingerprint.tree_fingerprint import StructuralFingerprint

logger = logging.getLogger("app.cli")

app = typer.Typer(help="Folder fingerprint and ledger tools", no_args_is_help=True)
ledger_app = typer.Typer(help="Inspect or edit the fingerprint ledger", no_args_is_help=True)
app.add_typer(ledger_app, name="ledger")


def make_container() -> AppContainer:
    if settings.store_backend == "postgres":
        DatabasePool.init()
    return build_container(settings)


@app.command("hash")
def hash_cmd(
    folder: Path = typer.Argument(..., help="Folder to fingerprint."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every hashed token."),
) -> None:
    """Fingerprint a folder twice and confirm both digests agree."""
    fp = StructuralFingerprint()
    try:
        if verbose:
            for token in fp.describe(folder):
                typer.echo(token)
        first, second, match = fp.verify_stable(folder)
    except (FileNotFoundError, NotADirectoryError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Hash 1: {first}")
    typer.echo(f"Hash 2: {second}")
    typer.echo(f"Deterministic: {'yes' if match else 'NO'}")
    if not match:
        raise typer.Exit(code=2)


@app.command("check")
def check_cmd(
    folder: str = typer.Argument(..., help="Folder name under the uploads directory."),
    scope: Optional[str] = typer.Option(None, "--scope", "-s", help="Destination index."),
) -> None:
    """Report whether an uploaded folder would be skipped as a duplicate."""
    c = make_container()
    target = c.scopes.resolve(scope)
    path = Path(c.settings.uploads_dir) / folder
    try:
        fingerprint = c.fingerprinter.compute_fingerprint(path)
    except (FileNotFoundError, NotADirectoryError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    check = c.resolver.check(fingerprint, folder, target)
    typer.echo(f"Folder:      {folder}")
    typer.echo(f"Fingerprint: {fingerprint}")
    typer.echo(f"Index:       {target}")
    typer.echo(f"Status:      {check.status.value} ({check.source})")
    if check.reason:
        typer.echo(f"Reason:      {check.reason}")
    typer.echo(f"Skip:        {'yes' if c.resolver.resolve(check) else 'no'}")


@ledger_app.command("list")
def ledger_list() -> None:
    """List completed ingestions, newest first."""
    c = make_container()
    records = c.ledger.list_all()
    if not records:
        typer.echo("(ledger is empty)")
        return
    for rec in records:
        typer.echo(f"{rec.completed_at}  {rec.key}  {rec.folder_name}")


@ledger_app.command("remove")
def ledger_remove(key: str = typer.Argument(..., help="Composite key <hash>:<owner>:<scope>.")) -> None:
    """Forget one completed ingestion so the folder can be ingested again."""
    c = make_container()
    if not c.ledger.remove_key(key):
        typer.echo(f"Not found: {key}", err=True)
        raise typer.Exit(code=1)
    typer.echo(f"Removed: {key}")


if __name__ == "__main__":
    logging.basicConfig(
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        level=logging.INFO,
    )
    app()
