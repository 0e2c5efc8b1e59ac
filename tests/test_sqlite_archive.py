try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import pytest

from portfolio_pulse.clients import SQLiteAnalysisArchive
from portfolio_pulse.schemas import PriorAnalysis


@pytest.mark.asyncio
async def test_archive_lists_company_analyses_newest_first(tmp_path):
    archive = SQLiteAnalysisArchive(str(tmp_path / "nested" / "analyses.db"))
    archive.put(PriorAnalysis(analysis_id="a1", company_id="c1", created_at="2025-05-01T00:00:00Z", summary="First"))
    archive.put(PriorAnalysis(analysis_id="a2", company_id="c1", created_at="2025-06-01T00:00:00Z", summary="Second"))
    archive.put(PriorAnalysis(analysis_id="b1", company_id="c2", created_at="2025-06-02T00:00:00Z"))

    analyses = await archive.list_for_company("c1")

    assert [a.analysis_id for a in analyses] == ["a2", "a1"]
    assert analyses[0].summary == "Second"


@pytest.mark.asyncio
async def test_archive_put_overwrites_existing_analysis(tmp_path):
    archive = SQLiteAnalysisArchive(str(tmp_path / "analyses.db"))
    archive.put(PriorAnalysis(analysis_id="a1", company_id="c1", status="running"))
    archive.put(PriorAnalysis(analysis_id="a1", company_id="c1", status="done"))

    analyses = await archive.list_for_company("c1")

    assert len(analyses) == 1
    assert analyses[0].status == "done"
