from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path

from ..backends.eml_store import EmlMailStore
from ..backends.pandas_converter import PandasExcelConverter
from ..backends.protocols import Converter, MailStore, TabularStore
from ..backends.xlsx_store import XlsxWorkbookStore
from ..models.config_models import RelayConfig

"""The external collaborators one run talks to, bundled for injection."""


@dataclass
class Collaborators:
    mail: MailStore
    workbooks: TabularStore
    converter: Converter
    sleep: Callable[[float], None] = field(default=time.sleep)
    temp_dir: Path | None = None

    @classmethod
    def from_config(cls, config: RelayConfig) -> Collaborators:
        """File-backed collaborators rooted at the configured store directories."""
        workbooks = XlsxWorkbookStore(config.stores.workbook_root)
        return cls(
            mail=EmlMailStore(config.stores.mail_root),
            workbooks=workbooks,
            converter=PandasExcelConverter(workbooks),
        )
