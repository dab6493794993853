"""Per-format converters: file path in, searchable text out. These may raise."""
from __future__ import annotations
import csv, re
from pathlib import Path
from typing import List, Tuple

from bs4 import BeautifulSoup
from openpyxl import load_workbook
from pypdf import PdfReader
import xlrd

_WS_RE = re.compile(r"\s+")


def _escape_cell(value) -> str:
    if isinstance(value, float) and value.is_integer():
        # xlrd reports every number as float
        value = int(value)
    return ("" if value is None else str(value)).replace("|", "\\|").replace("\n", " ")


def _md_table(header: List[str], rows: List[List[str]]) -> str:
    out = "| " + " | ".join(header) + " |\n"
    out += "| " + " | ".join("---" for _ in header) + " |\n"
    for row in rows:
        out += "| " + " | ".join(row) + " |\n"
    return out


def read_text(path: Path) -> str:
    return path.read_text(encoding="utf-8", errors="replace")


def pdf_to_text(path: Path) -> str:
    reader = PdfReader(str(path))
    pages = []
    for page in reader.pages:
        text = (page.extract_text() or "").strip()
        if text:
            pages.append(text)
    return "\n\n".join(pages)


def html_to_text(path: Path) -> str:
    html = read_text(path)
    soup = BeautifulSoup(html, "html.parser")
    for tag in soup(["script", "style"]):
        tag.decompose()
    root = soup.body or soup
    text = _WS_RE.sub(" ", root.get_text(" ")).strip()
    # pages with no visible text are still searchable by their markup
    return text or html


_ZIP_MAGIC = b"PK\x03\x04"


def _openpyxl_sheets(path: Path) -> List[Tuple[str, List[list]]]:
    wb = load_workbook(str(path), read_only=True, data_only=True)
    try:
        return [(ws.title, [list(r) for r in ws.iter_rows(values_only=True)]) for ws in wb.worksheets]
    finally:
        wb.close()


def _xlrd_sheets(path: Path) -> List[Tuple[str, List[list]]]:
    # legacy BIFF workbooks (.xls)
    book = xlrd.open_workbook(str(path))
    try:
        return [(sh.name, [sh.row_values(i) for i in range(sh.nrows)]) for sh in book.sheets()]
    finally:
        book.release_resources()


def excel_to_text(path: Path) -> str:
    with path.open("rb") as f:
        is_zip = f.read(4) == _ZIP_MAGIC
    # an .xls name may still hold an xlsx zip; the bytes decide
    sheets = _openpyxl_sheets(path) if is_zip else _xlrd_sheets(path)

    out = ""
    for title, rows in sheets:
        rows = [r for r in rows if any(v is not None and str(v) != "" for v in r)]
        if not rows:
            out += f"## Sheet: {title} (Empty)\n\n"
            continue
        width = max(len(r) for r in rows)
        first = rows[0]
        header = [
            _escape_cell(first[i]) if i < len(first) and first[i] not in (None, "") else f"Col {i + 1}"
            for i in range(width)
        ]
        body = [[_escape_cell(r[i]) if i < len(r) else "" for i in range(width)] for r in rows[1:]]
        out += f"## Sheet: {title}\n\n" + _md_table(header, body) + "\n"
    return out if out.strip() else "[Empty Excel File]"


def csv_to_text(path: Path) -> str:
    with path.open("r", encoding="utf-8", errors="replace", newline="") as f:
        reader = csv.reader(f)
        header = next(reader, None)
        rows = [r for r in reader]
    out = "# CSV Data\n\n"
    if not header:
        out += "No headers found in CSV file.\n\n"
        header = []
    else:
        body = [[_escape_cell(r[i]) if i < len(r) else "" for i in range(len(header))] for r in rows]
        out += _md_table([_escape_cell(h) for h in header], body)
    out += f"\n**Total rows:** {len(rows)}\n"
    out += f"**Columns:** {len(header)}\n"
    return out
