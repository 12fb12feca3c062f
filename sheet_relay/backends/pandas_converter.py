from __future__ import annotations

import logging
import uuid
from pathlib import Path

import pandas as pd

from .xlsx_store import XlsxWorkbookStore

"""Binary spreadsheet -> store workbook conversion with pandas.

The first sheet of the uploaded file is read raw (no header inference, object
dtype so integers stay integers) and saved as a new workbook in the store.
Empty cells become None.
"""

__all__ = [
    "PandasExcelConverter",
]

logger = logging.getLogger(__name__)

CONVERTED_SUFFIX = "_converted"


class PandasExcelConverter:
    def __init__(self, store: XlsxWorkbookStore) -> None:
        self.store = store

    def convert(self, path: Path, name: str) -> str:
        df = pd.read_excel(path, sheet_name=0, header=None, dtype=object)
        df = df.astype(object).where(pd.notna(df), None)
        rows = df.values.tolist()
        stem = Path(name).stem or "upload"
        workbook_id = f"{stem}{CONVERTED_SUFFIX}-{uuid.uuid4().hex[:8]}"
        self.store.create(workbook_id, {"Sheet1": rows}, title=f"{name}{CONVERTED_SUFFIX}")
        logger.debug("file converted name=%s workbook_id=%s rows=%d", name, workbook_id, len(rows))
        return workbook_id

    def remove(self, workbook_id: str) -> None:
        self.store.remove(workbook_id)
