import os

os.environ.setdefault("STORE_BACKEND", "memory")

from pathlib import Path
from typing import Dict, Iterator, Union

import pytest
from fastapi.testclient import TestClient

from app.container import AppContainer, build_container, set_container
from app.db.config import Settings
from app.main import app
from app.models.store.inmemory_store import InMemoryDocumentStore


def _write_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    root.mkdir(parents=True, exist_ok=True)
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree():
    return _write_tree


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    return Settings(
        uploads_dir=str(tmp_path / "uploads"),
        ledger_path=str(tmp_path / "folder_checksums.json"),
        store_backend="memory",
        default_scope="directory-index",
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore()


@pytest.fixture
def container(settings: Settings, store: InMemoryDocumentStore) -> AppContainer:
    return build_container(settings, store=store)


@pytest.fixture
def uploads(settings: Settings) -> Path:
    path = Path(settings.uploads_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def client(container: AppContainer) -> Iterator[TestClient]:
    # no lifespan: the container is wired directly
    set_container(container)
    try:
        yield TestClient(app)
    finally:
        set_container(None)
