try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timezone

import httpx
import pytest

from portfolio_pulse.main import app
from portfolio_pulse.schemas import CompanyDataPacket, CompanyProfile, SessionRecord
from pulse_agents.signals.graph import create_signals_graph


class StubCollector:
    def __init__(self) -> None:
        self.invalidated: list[str] = []

    async def collect(self, company_id: str):
        if company_id != "company-1":
            return None
        return CompanyDataPacket(
            company=CompanyProfile(company_id="company-1", name="Acme"),
            sessions=(SessionRecord(date="2025-06-20", follow_up="Share the KPI dashboard weekly"),),
            collected_at=datetime(2025, 6, 30, tzinfo=timezone.utc),
        )

    def invalidate(self, company_id: str) -> int:
        self.invalidated.append(company_id)
        return 7


pytestmark = pytest.mark.anyio("asyncio")


@pytest.fixture()
def collector():
    from portfolio_pulse import dependencies

    stub = StubCollector()
    app.dependency_overrides.clear()
    app.dependency_overrides.update(
        {
            dependencies.get_data_collector: lambda: stub,
            dependencies.get_signals_graph: lambda: create_signals_graph(stub),
        }
    )
    yield stub
    app.dependency_overrides.clear()


def _client() -> httpx.AsyncClient:
    return httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://testserver",
    )


async def test_health_endpoint():
    async with _client() as client:
        response = await client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_signals_endpoint_returns_camel_case_reports(collector):
    async with _client() as client:
        response = await client.get("/api/companies/company-1/signals")

    assert response.status_code == 200
    payload = response.json()
    assert payload["companyId"] == "company-1"
    assert payload["companyName"] == "Acme"
    assert payload["pulseReport"]["meetingCadence"]["totalSessions"] == 1
    assert payload["pulseReport"]["meetingCadence"]["trend"] is None
    assert payload["analystReport"]["mentorPatterns"]["followUpRate"] == 1.0
    assert payload["analystReport"]["expertAnalysis"]["resolutionDaysIsApproximate"] is True


async def test_signals_endpoint_404_for_unknown_company(collector):
    async with _client() as client:
        response = await client.get("/api/companies/unknown/signals")

    assert response.status_code == 404


async def test_refresh_endpoint_invalidates_cache(collector):
    async with _client() as client:
        response = await client.post("/api/companies/company-1/refresh")

    assert response.status_code == 200
    assert response.json() == {"invalidated": 7}
    assert collector.invalidated == ["company-1"]
