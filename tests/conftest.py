"""Pytest configuration shared across the suite."""

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import datetime, timezone

import pytest

from portfolio_pulse.schemas import CompanyDataPacket, CompanyProfile

COLLECTED_AT = datetime(2025, 6, 30, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def anyio_backend() -> str:
    """Force AnyIO-powered tests to run against asyncio backend only."""
    return "asyncio"


@pytest.fixture
def make_packet():
    """Build a packet for ``Acme`` collected at a fixed moment."""

    def _make(**overrides) -> CompanyDataPacket:
        fields = {
            "company": CompanyProfile(company_id="company-1", name="Acme"),
            "collected_at": COLLECTED_AT,
        }
        fields.update(overrides)
        return CompanyDataPacket(**fields)

    return _make
