from __future__ import annotations

import logging
import shutil
import time
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Dict, Iterable, Optional, Tuple

from app.core.entities import DuplicateCheck
from app.core.ports.fingerprint import IFingerprinter
from app.core.services.duplicate_resolver import DuplicateResolver

log = logging.getLogger("app.upload")

TEMP_PREFIX = "temp-"


@dataclass
class UploadResult:
    owner: str
    fingerprint: str
    tree: Dict[str, Optional[dict]]
    duplicate: DuplicateCheck
    file_count: int

    @property
    def already_exists(self) -> bool:
        return self.duplicate.is_duplicate


def _safe_relative(raw: str) -> PurePosixPath:
    rel = PurePosixPath(raw.replace("\\", "/"))
    if rel.is_absolute() or any(part == ".." for part in rel.parts) or not rel.parts:
        raise ValueError(f"Invalid relative path in upload: {raw!r}")
    return rel


def build_tree(folder: Path) -> Dict[str, Optional[dict]]:
    """Nested dict of the folder; files map to None."""
    tree: Dict[str, Optional[dict]] = {}
    for item in sorted(folder.iterdir(), key=lambda p: p.name):
        tree[item.name] = build_tree(item) if item.is_dir() else None
    return tree


class UploadService:
    """
    Receives a folder upload: files are staged under a temporary directory,
    the root folder is fingerprinted there and checked for duplicates, then the
    folder is moved to `<uploads_dir>/<root>` replacing any previous copy.
    """

    def __init__(self, uploads_dir: str | Path, fingerprinter: IFingerprinter, resolver: DuplicateResolver):
        self.uploads_dir = Path(uploads_dir)
        self.fingerprinter = fingerprinter
        self.resolver = resolver

    def receive(self, files: Iterable[Tuple[str, BinaryIO]], scope: str) -> UploadResult:
        entries = [(_safe_relative(rel), stream) for rel, stream in files]
        if not entries:
            raise ValueError("No files uploaded")

        roots = {rel.parts[0] for rel, _ in entries if len(rel.parts) > 1}
        loose = [str(rel) for rel, _ in entries if len(rel.parts) == 1]
        if len(roots) > 1 or (roots and loose):
            raise ValueError(
                f"Upload must contain a single top-level folder, got {sorted(roots) + loose}"
            )

        root_name = entries[0][0].parts[0] if len(entries[0][0].parts) > 1 else "uploaded-folder"
        self.uploads_dir.mkdir(parents=True, exist_ok=True)
        temp_dir = self.uploads_dir / f"{TEMP_PREFIX}{int(time.time() * 1000)}-{root_name}"
        temp_dir.mkdir(parents=True)

        try:
            for rel, stream in entries:
                target = temp_dir.joinpath(*rel.parts)
                target.parent.mkdir(parents=True, exist_ok=True)
                with target.open("wb") as out:
                    shutil.copyfileobj(stream, out)
            log.info(f"📦 Uploaded {len(entries)} files to temp directory {temp_dir.name}")

            # files arrive as "<root>/..." so the root folder is the first directory
            roots = sorted(p for p in temp_dir.iterdir() if p.is_dir())
            folder = roots[0] if roots else temp_dir
            owner = folder.name if roots else root_name

            fingerprint = self.fingerprinter.compute_fingerprint(folder)
            check = self.resolver.check(fingerprint, owner, scope)
            log.info(f"🔍 Upload duplicate check for {owner}: {check.status.value} ({check.source})")

            final = self.uploads_dir / owner
            if final.exists():
                shutil.rmtree(final)
            if folder == temp_dir:
                temp_dir.rename(final)
            else:
                folder.rename(final)
        finally:
            if temp_dir.exists():
                shutil.rmtree(temp_dir, ignore_errors=True)

        return UploadResult(
            owner=owner,
            fingerprint=fingerprint,
            tree={owner: build_tree(final)},
            duplicate=check,
            file_count=len(entries),
        )
