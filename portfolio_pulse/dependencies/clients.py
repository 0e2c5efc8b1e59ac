"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache
from typing import Any

from portfolio_pulse.clients import NotionRecordStore, SQLiteAnalysisArchive
from portfolio_pulse.core.config import get_settings
from portfolio_pulse.services import DataCollector, TTLRecordCache
from pulse_agents.signals.graph import create_signals_graph
from pulse_agents.signals.lexicon import DEFAULT_LEXICON, Lexicon, load_lexicon


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_record_store() -> NotionRecordStore:
    """Provide the Notion-backed record store."""
    return NotionRecordStore(_settings().notion)


@lru_cache()
def get_analysis_archive() -> SQLiteAnalysisArchive:
    """Provide the SQLite archive of prior analyses."""
    return SQLiteAnalysisArchive(_settings().aggregation.analysis_archive_db_path)


@lru_cache()
def get_record_cache() -> TTLRecordCache:
    """Provide the process-wide record cache."""
    return TTLRecordCache(ttl_seconds=_settings().aggregation.record_cache_ttl_seconds)


@lru_cache()
def get_lexicon() -> Lexicon:
    """Built-in vocabulary unless ``LEXICON_PATH`` points at an override."""
    path = _settings().lexicon_path
    return load_lexicon(path) if path else DEFAULT_LEXICON


@lru_cache()
def get_data_collector() -> DataCollector:
    """Provide the data collector wired to the store, archive and cache."""
    return DataCollector(
        get_record_store(),
        archive=get_analysis_archive(),
        cache=get_record_cache(),
        enrichment_timeout_seconds=_settings().aggregation.enrichment_timeout_seconds,
    )


@lru_cache()
def get_signals_graph() -> Any:
    """Provide the compiled signals workflow."""
    return create_signals_graph(get_data_collector(), get_lexicon())


__all__ = [
    "get_analysis_archive",
    "get_data_collector",
    "get_lexicon",
    "get_record_cache",
    "get_record_store",
    "get_signals_graph",
]
