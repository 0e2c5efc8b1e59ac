"""
Versioned vocabulary tables used by the analyst and pulse tracker.

Every keyword list, status vocabulary and milestone pattern lives here so the
tables can be swapped (``load_lexicon``) without touching the analysis code.
"""

from __future__ import annotations

import json
import re
from functools import lru_cache
from pathlib import Path
from typing import Dict, Iterable, List, Pattern, Tuple

from pydantic import BaseModel, ConfigDict, Field, field_validator

from portfolio_pulse.schemas.reports import MilestoneCategory


class Lexicon(BaseModel):
    """Keyword, status and pattern tables for one lexicon version."""

    model_config = ConfigDict(frozen=True)

    version: str
    topic_terms: Tuple[str, ...] = ()
    advice_themes: Tuple[str, ...] = ()
    problem_terms: Tuple[str, ...] = ()
    milestone_patterns: Dict[MilestoneCategory, str] = Field(
        default_factory=dict,
        description="Category to regex, checked in insertion order; first match wins.",
    )
    completed_statuses: Tuple[str, ...] = ()
    declined_statuses: Tuple[str, ...] = ()
    pending_statuses: Tuple[str, ...] = ()
    urgent_labels: Tuple[str, ...] = ()
    mentoring_session_types: Tuple[str, ...] = ()
    expert_session_types: Tuple[str, ...] = ()

    @field_validator("milestone_patterns")
    @classmethod
    def _patterns_compile(cls, value: Dict[str, str]) -> Dict[str, str]:
        for category, pattern in value.items():
            try:
                re.compile(pattern)
            except re.error as exc:
                raise ValueError(f"Invalid pattern for {category}: {exc}") from exc
        return value

    def is_completed(self, status: str) -> bool:
        return _normalize(status) in _folded(self.completed_statuses)

    def is_terminal(self, status: str) -> bool:
        folded = _normalize(status)
        return folded in _folded(self.completed_statuses) or folded in _folded(
            self.declined_statuses
        )

    def is_pending(self, status: str) -> bool:
        return _normalize(status) in _folded(self.pending_statuses)

    def is_urgent(self, urgency: str) -> bool:
        return _normalize(urgency) in _folded(self.urgent_labels)

    def is_mentoring_session(self, session_types: Iterable[str]) -> bool:
        vocabulary = _folded(self.mentoring_session_types)
        return any(_normalize(kind) in vocabulary for kind in session_types)

    def is_expert_session(self, session_types: Iterable[str]) -> bool:
        vocabulary = _folded(self.expert_session_types)
        return any(_normalize(kind) in vocabulary for kind in session_types)

    def milestone_category(self, text: str) -> MilestoneCategory | None:
        """First category whose pattern matches ``text``."""
        for category, pattern in self.milestone_patterns.items():
            if milestone_regex(pattern).search(text):
                return category
        return None


def _normalize(value: str) -> str:
    return (value or "").strip().casefold()


def _folded(values: Iterable[str]) -> frozenset[str]:
    return frozenset(_normalize(value) for value in values)


@lru_cache(maxsize=512)
def term_regex(term: str) -> Pattern[str]:
    """Whole-word, case-insensitive match for ``term`` and its plural."""
    return re.compile(rf"(?<!\w){re.escape(term)}s?(?!\w)", re.IGNORECASE)


@lru_cache(maxsize=64)
def milestone_regex(pattern: str) -> Pattern[str]:
    return re.compile(pattern, re.IGNORECASE)


def find_terms(text: str, terms: Iterable[str]) -> List[str]:
    """Terms from ``terms`` that occur in ``text``, in vocabulary order."""
    if not text:
        return []
    return [term for term in terms if term_regex(term).search(text)]


DEFAULT_LEXICON = Lexicon(
    version="2025.1",
    topic_terms=(
        "revenue", "MRR", "ARR", "GMV", "MAU", "DAU", "conversion", "retention", "churn",
        "customer", "user", "B2B", "B2C",
        "fundraising", "investment", "round", "series", "IR", "valuation", "runway",
        "hiring", "team", "organization", "resignation", "CTO", "developer",
        "product", "MVP", "PMF", "launch", "release", "pivot",
        "marketing", "sales", "partnership", "alliance", "MOU",
        "technology", "AI", "data", "infrastructure", "security",
        "patent", "IP", "certification", "regulation",
        "KPI", "OKR", "goal", "performance", "metric",
        "overseas", "global", "expansion",
    ),
    advice_themes=(
        "customer interview", "user testing", "pivot", "focus", "priority",
        "hiring", "team building", "IR deck", "fundraising", "revenue", "marketing",
        "KPI", "metric", "data", "process", "organization",
        "product", "technology", "sales", "partner", "overseas",
    ),
    problem_terms=(
        "schedule", "delay", "communication", "staffing", "resource",
        "quality", "technical", "bug", "prioritization", "focus", "decision",
        "customer", "revenue", "marketing", "metric", "data",
    ),
    milestone_patterns={
        "Achievement": (
            r"\b(?:revenue|MRR|ARR|GMV|MAU|DAU|conversion rate|sign-?ups?)\b"
            r"|(?:won|signed|closed|acquired)\b.*\b(?:customers?|contracts?|deals?)\b"
            r"|\b(?:launch(?:ed)?|released?|go-live|went live)\b"
        ),
        "Inflection": (
            r"\bpivot(?:ed|ing)?\b|change(?:d)? (?:of )?direction|strategy (?:change|shift)"
            r"|business model change|target (?:market )?change|\brebrand(?:ed|ing)?\b"
        ),
        "Decision": (
            r"(?:raised|closed|secured)\b.*\b(?:funding|round|investment)\b"
            r"|\b(?:seed|funding) round\b|\bseries [a-d]\b|\bvaluation\b|\bIR\b"
            r"|\bacquisition\b|\bpartnership\b|\bMOU\b|\balliance\b"
        ),
        "Risk": (
            r"\bresign(?:ed|ation)?\b|\battrition\b|\blay-?offs?\b|\blaid off\b"
            r"|\brunway\b|cash (?:crunch|shortage)|\bdelay(?:ed|s)?\b|\bfail(?:ed|ure)?\b"
        ),
        "External": (
            r"government (?:grant|support|program)|\bgrant\b|\bsubsid(?:y|ies)\b|\bawards?\b"
            r"|\bcertifi(?:ed|cation)\b|\bpatent(?:ed)?\b|demo ?day"
        ),
    },
    completed_statuses=("completed", "done"),
    declined_statuses=("declined", "not supported"),
    pending_statuses=("received", "in review", "matching"),
    urgent_labels=("urgent",),
    mentoring_session_types=("mentoring", "checkup", "review"),
    expert_session_types=("expert deployment",),
)


def load_lexicon(path: str | Path) -> Lexicon:
    """Read a JSON lexicon; missing tables fall back to ``DEFAULT_LEXICON``."""
    payload = json.loads(Path(path).read_text(encoding="utf-8"))
    merged = {**DEFAULT_LEXICON.model_dump(), **payload}
    return Lexicon.model_validate(merged)


__all__ = ["DEFAULT_LEXICON", "Lexicon", "find_terms", "load_lexicon", "milestone_regex", "term_regex"]
