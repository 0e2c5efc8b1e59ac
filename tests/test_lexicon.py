try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import json

import pytest
from pydantic import ValidationError

from pulse_agents.signals.lexicon import DEFAULT_LEXICON, find_terms, load_lexicon


def test_terms_match_whole_words_case_insensitively():
    text = "Revenue is up; AI pilots and customers. Said nothing about aid."

    assert find_terms(text, ["revenue", "AI", "customer", "aid", "data"]) == [
        "revenue",
        "AI",
        "customer",
        "aid",
    ]
    assert find_terms("Paid marketing", ["AI", "aid"]) == []


def test_status_vocabularies_are_case_insensitive():
    assert DEFAULT_LEXICON.is_completed(" Done ")
    assert DEFAULT_LEXICON.is_terminal("Not supported")
    assert not DEFAULT_LEXICON.is_terminal("Matching")
    assert DEFAULT_LEXICON.is_pending("IN REVIEW")
    assert DEFAULT_LEXICON.is_urgent("Urgent")
    assert DEFAULT_LEXICON.is_mentoring_session(["Workshop", "CheckUp"])
    assert DEFAULT_LEXICON.is_expert_session(["Expert Deployment"])


def test_milestone_category_first_match_wins():
    assert DEFAULT_LEXICON.milestone_category("We launched and pivoted") == "Achievement"
    assert DEFAULT_LEXICON.milestone_category("Key engineer resigned") == "Risk"
    assert DEFAULT_LEXICON.milestone_category("Nothing notable") is None


def test_load_lexicon_overrides_tables(tmp_path):
    path = tmp_path / "lexicon.json"
    path.write_text(
        json.dumps({"version": "2025.2-test", "topic_terms": ["churn", "NPS"]}),
        encoding="utf-8",
    )

    lexicon = load_lexicon(path)

    assert lexicon.version == "2025.2-test"
    assert lexicon.topic_terms == ("churn", "NPS")
    assert lexicon.advice_themes == DEFAULT_LEXICON.advice_themes
    assert list(lexicon.milestone_patterns) == list(DEFAULT_LEXICON.milestone_patterns)


def test_load_lexicon_rejects_invalid_pattern(tmp_path):
    path = tmp_path / "lexicon.json"
    path.write_text(json.dumps({"milestone_patterns": {"Risk": "(unclosed"}}), encoding="utf-8")

    with pytest.raises(ValidationError):
        load_lexicon(path)
