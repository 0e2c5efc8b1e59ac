try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timezone

import pytest

from portfolio_pulse.schemas import CompanyDataPacket, CompanyProfile, SessionRecord
from pulse_agents.signals.graph import create_signals_graph, run_company_signals

COLLECTED_AT = datetime(2025, 6, 30, tzinfo=timezone.utc)


class StubCollector:
    def __init__(self, packet: CompanyDataPacket | None) -> None:
        self.packet = packet
        self.requested: list[str] = []

    async def collect(self, company_id: str):
        self.requested.append(company_id)
        return self.packet


@pytest.mark.asyncio
async def test_graph_produces_both_reports():
    packet = CompanyDataPacket(
        company=CompanyProfile(company_id="company-1", name="Acme"),
        sessions=(
            SessionRecord(date="2025-06-01", summary="Revenue up"),
            SessionRecord(date="2025-06-15", summary="Hiring plan"),
        ),
        collected_at=COLLECTED_AT,
    )
    collector = StubCollector(packet)
    graph = create_signals_graph(collector)

    signals = await run_company_signals(graph, "company-1")

    assert collector.requested == ["company-1"]
    assert signals.company_name == "Acme"
    assert signals.collected_at == COLLECTED_AT
    assert signals.pulse_report.meeting_cadence.total_sessions == 2
    assert signals.analyst_report.topic_analysis.recent_focus == ["hiring", "revenue"]


@pytest.mark.asyncio
async def test_graph_returns_none_for_missing_company():
    graph = create_signals_graph(StubCollector(None))

    assert await run_company_signals(graph, "missing") is None
