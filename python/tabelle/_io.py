"""Pick a codec from the file extension."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any

from tabelle._csv import load_csv, save_csv
from tabelle._errors import UnsupportedFormatError
from tabelle._sheet import Sheet
from tabelle._xlsx import load_xlsx, save_xlsx

logger = logging.getLogger(__name__)

CSV_SUFFIXES = frozenset({".csv", ".tsv", ".txt"})
XLSX_SUFFIXES = frozenset({".xlsx", ".xlsm"})


def _suffix(path: str | os.PathLike[str]) -> str:
    suffix = Path(path).suffix.lower()
    if suffix not in CSV_SUFFIXES | XLSX_SUFFIXES:
        raise UnsupportedFormatError(f"Unsupported file type {suffix or '(none)'!r}: {os.fspath(path)!r}")
    return suffix


def load_sheet(path: str | os.PathLike[str], **kwargs: Any) -> Sheet:
    """Open a .csv/.tsv/.txt or .xlsx/.xlsm file as a new sheet.

    Keyword arguments are passed through to :func:`load_csv` or
    :func:`load_xlsx`.
    """
    if _suffix(path) in XLSX_SUFFIXES:
        return load_xlsx(path, **kwargs)
    return load_csv(path, **kwargs)


def save_sheet(sheet: Sheet, path: str | os.PathLike[str], **kwargs: Any) -> None:
    """Save *sheet* in the format named by the extension of *path*."""
    suffix = _suffix(path)
    if suffix in XLSX_SUFFIXES:
        save_xlsx(sheet, path, **kwargs)
    else:
        if suffix == ".tsv":
            kwargs.setdefault("delimiter", "\t")
        save_csv(sheet, path, **kwargs)
    logger.info("Saved %dx%d sheet to %s", sheet.n_cols, sheet.n_rows, os.fspath(path))
