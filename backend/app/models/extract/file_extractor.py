from __future__ import annotations
import logging
from pathlib import Path
from typing import Callable, Dict

from app.core.ports.extractor import ITextExtractor
from app.models.extract import converters

logger = logging.getLogger("app.extract")

BINARY_EXTENSIONS = {".pdf", ".xlsx", ".xls"}

CONVERTERS: Dict[str, Callable[[Path], str]] = {
    ".pdf": converters.pdf_to_text,
    ".html": converters.html_to_text,
    ".htm": converters.html_to_text,
    ".xlsx": converters.excel_to_text,
    ".xls": converters.excel_to_text,
    ".csv": converters.csv_to_text,
}


def placeholder(path: Path) -> str:
    return f"[Unable to extract {path.name}]"


class FileTextExtractor(ITextExtractor):
    """
    Dispatches on extension. A failing converter falls back to the raw bytes
    decoded as text, then to a placeholder, so every file yields a document.
    """

    def extract(self, path: str | Path) -> str:
        p = Path(path)
        convert = CONVERTERS.get(p.suffix.lower(), converters.read_text)
        try:
            text = convert(p)
            if text and text.strip():
                return text
            logger.warning(f"⚠️ No text extracted from {p.name}; using raw content")
        except Exception as e:
            logger.warning(f"⚠️ Conversion failed for {p}: {e}; using raw content")

        try:
            raw = p.read_bytes().decode("utf-8", errors="replace")
            if raw.strip():
                return raw
        except OSError as e:
            logger.error(f"❌ Could not read {p}: {e}")
        return placeholder(p)

    def read_raw(self, path: str | Path) -> str:
        p = Path(path)
        ext = p.suffix.lower()
        if ext in BINARY_EXTENSIONS:
            return f"[Binary {ext.lstrip('.').upper()} file - {p.stat().st_size} bytes]"
        return p.read_text(encoding="utf-8", errors="replace")
