"""Deterministic company signals: analyst report, pulse report and their workflow."""

from __future__ import annotations

from .analyst import generate_analyst_report
from .lexicon import DEFAULT_LEXICON, Lexicon, load_lexicon
from .pulse_tracker import generate_pulse_report

__all__ = [
    "DEFAULT_LEXICON",
    "Lexicon",
    "generate_analyst_report",
    "generate_pulse_report",
    "load_lexicon",
]
