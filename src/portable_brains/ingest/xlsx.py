"""XLSX extractor — worksheet rows via openpyxl."""

from __future__ import annotations

import logging
import os
import tempfile
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time
from pathlib import Path

from openpyxl import load_workbook

from portable_brains.ingest.base import BaseExtractor
from portable_brains.ingest.formats import DocumentFormat

logger = logging.getLogger(__name__)

_CELL_SEPARATOR = " | "


@contextmanager
def materialized(data: bytes, suffix: str = ".xlsx") -> Iterator[Path]:
    """Write *data* to a temporary file and yield its path.

    The file is removed when the block exits, whether it returns or raises.
    """
    fd, name = tempfile.mkstemp(suffix=suffix, prefix="portable-brains-")
    path = Path(name)
    try:
        with os.fdopen(fd, "wb") as fh:
            fh.write(data)
        yield path
    finally:
        path.unlink(missing_ok=True)


def cell_text(value: object, data_type: str | None = None) -> str:
    """Render one cell value as text; ``""`` for empty and error cells."""
    if value is None or data_type == "e":
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return str(value).strip()


class XlsxExtractor(BaseExtractor):
    """Extract every worksheet as ``" | "``-joined row lines.

    Sheets are visited in workbook order and rows top to bottom. Empty and
    error cells are skipped; rows with no remaining cells are dropped. An
    ``--- end of sheet: <name> ---`` line follows each sheet.

    openpyxl reads from a temporary on-disk copy of the payload (see
    ``materialized``), which is deleted on every exit path.
    """

    format = DocumentFormat.XLSX

    def _extract_raw(self, path_hint: str, data: bytes) -> str:
        lines: list[str] = []
        with materialized(data) as tmp_path:
            wb = load_workbook(tmp_path, read_only=True, data_only=True)
            try:
                for ws in wb.worksheets:
                    row_count = 0
                    for row in ws.iter_rows():
                        cells = [
                            cell_text(cell.value, getattr(cell, "data_type", None))
                            for cell in row
                        ]
                        cells = [c for c in cells if c]
                        if cells:
                            lines.append(_CELL_SEPARATOR.join(cells))
                            row_count += 1
                    lines.append(f"--- end of sheet: {ws.title} ---")
                    logger.debug("Sheet %r of %s: %d rows", ws.title, path_hint, row_count)
            finally:
                wb.close()
        return "\n".join(lines)
