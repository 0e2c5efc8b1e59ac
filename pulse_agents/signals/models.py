"""
Data models shared across the signals package.
"""

from __future__ import annotations

from typing import Optional, TypedDict

from portfolio_pulse.schemas import AnalystReport, CompanyDataPacket, PulseReport


class SignalsState(TypedDict, total=False):
    """State tracked inside the LangGraph workflow.

    ``analyze`` and ``track_pulse`` run in the same step, so each writes only
    its own key.
    """

    company_id: str
    packet: Optional[CompanyDataPacket]
    analyst_report: AnalystReport
    pulse_report: PulseReport


__all__ = ["SignalsState"]
