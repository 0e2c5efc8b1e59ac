"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_analysis_archive,
    get_data_collector,
    get_lexicon,
    get_record_cache,
    get_record_store,
    get_signals_graph,
)

__all__ = [
    "get_analysis_archive",
    "get_data_collector",
    "get_lexicon",
    "get_record_cache",
    "get_record_store",
    "get_signals_graph",
]
