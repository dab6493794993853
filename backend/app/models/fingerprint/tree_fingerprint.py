from __future__ import annotations
import hashlib, logging, os
from pathlib import Path
from typing import Iterator, List, Tuple

from app.core.ports.fingerprint import IFingerprinter

logger = logging.getLogger("app.fingerprint")


def _iter_tokens(root: Path) -> Iterator[str]:
    """
    Depth-first walk with entries sorted by name at every level.
    Directories yield "DIR:<rel>", files yield "FILE:<rel>:<size>:<ext>".
    File bytes are never read. Symlinked directories are not followed.
    """
    def walk(current: Path) -> Iterator[str]:
        for name in sorted(os.listdir(current)):
            item = current / name
            rel = item.relative_to(root).as_posix()
            if item.is_symlink() and item.is_dir():
                # linked directories can loop back to an ancestor
                logger.debug("Skipping symlinked directory %s", item)
                continue
            if item.is_dir():
                yield f"DIR:{rel}"
                yield from walk(item)
            elif item.is_file():
                ext = item.suffix.lower()
                yield f"FILE:{rel}:{item.stat().st_size}:{ext}"

    yield from walk(root)


class StructuralFingerprint(IFingerprinter):
    """
    SHA-256 over the shape of a directory tree: relative paths, file sizes and
    lower-cased extensions. Renaming the root folder does not change the digest.
    """

    def _resolve_root(self, root: str | Path) -> Path:
        p = Path(root)
        if not p.exists():
            raise FileNotFoundError(f"Folder not found: {p}")
        if not p.is_dir():
            raise NotADirectoryError(f"Not a folder: {p}")
        return p

    def compute_fingerprint(self, root: str | Path) -> str:
        p = self._resolve_root(root)
        sha = hashlib.sha256()
        entries = 0
        for token in _iter_tokens(p):
            sha.update(token.encode("utf-8"))
            entries += 1
        digest = sha.hexdigest()
        logger.info("🔑 Fingerprint %s | folder=%s | entries=%d", digest, p, entries)
        return digest

    def describe(self, root: str | Path) -> List[str]:
        return list(_iter_tokens(self._resolve_root(root)))

    def verify_stable(self, root: str | Path) -> Tuple[str, str, bool]:
        first = self.compute_fingerprint(root)
        second = self.compute_fingerprint(root)
        return first, second, first == second
