"""Expose constructed client wrappers."""

from .notion import NotionRecordStore, RecordStoreError
from .sqlite_store import SQLiteAnalysisArchive

__all__ = [
    "NotionRecordStore",
    "RecordStoreError",
    "SQLiteAnalysisArchive",
]
