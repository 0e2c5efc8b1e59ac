"""Service layer exports."""

from .data_collector import AnalysisArchive, DataCollector, RecordStore
from .record_cache import NullRecordCache, RecordCache, TTLRecordCache

__all__ = [
    "AnalysisArchive",
    "DataCollector",
    "NullRecordCache",
    "RecordCache",
    "RecordStore",
    "TTLRecordCache",
]
