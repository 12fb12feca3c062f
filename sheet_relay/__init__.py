"""sheet-relay: email attachment ingestion and sheet-to-sheet push for district workbooks."""

__version__ = "0.3.0"
