"""
LangGraph workflow that collects a company's packet and derives both reports.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from langgraph.graph import END, START, StateGraph

from portfolio_pulse.schemas import CompanySignals
from portfolio_pulse.services import DataCollector
from pulse_agents.signals.analyst import generate_analyst_report
from pulse_agents.signals.lexicon import DEFAULT_LEXICON, Lexicon
from pulse_agents.signals.models import SignalsState
from pulse_agents.signals.pulse_tracker import generate_pulse_report

logger = logging.getLogger(__name__)


async def _collect(state: SignalsState, collector: DataCollector) -> Dict[str, Any]:
    """Build the immutable packet for the requested company."""
    packet = await collector.collect(state["company_id"])
    return {"packet": packet}


def _route_after_collect(state: SignalsState) -> List[str] | str:
    if state.get("packet") is None:
        return END
    return ["analyze", "track_pulse"]


def create_signals_graph(collector: DataCollector, lexicon: Lexicon = DEFAULT_LEXICON) -> Any:
    """Compile and return the signals LangGraph workflow."""
    graph = StateGraph(SignalsState)

    async def collect_node(state: SignalsState) -> Dict[str, Any]:
        return await _collect(state, collector)

    def analyze_node(state: SignalsState) -> Dict[str, Any]:
        return {"analyst_report": generate_analyst_report(state["packet"], lexicon)}

    def track_pulse_node(state: SignalsState) -> Dict[str, Any]:
        return {"pulse_report": generate_pulse_report(state["packet"], lexicon)}

    graph.add_node("collect", collect_node)
    graph.add_node("analyze", analyze_node)
    graph.add_node("track_pulse", track_pulse_node)

    graph.add_edge(START, "collect")
    graph.add_conditional_edges(
        "collect", _route_after_collect, ["analyze", "track_pulse", END]
    )
    graph.add_edge("analyze", END)
    graph.add_edge("track_pulse", END)
    return graph.compile()


async def run_company_signals(graph: Any, company_id: str) -> Optional[CompanySignals]:
    """Run the workflow; ``None`` when the company does not exist."""
    state: SignalsState = await graph.ainvoke({"company_id": company_id})
    packet = state.get("packet")
    if packet is None:
        return None

    logger.info(
        "Signals ready for %s (cadence trend: %s)",
        company_id,
        state["pulse_report"].meeting_cadence.trend or "unclassified",
    )
    return CompanySignals(
        company_id=packet.company.company_id,
        company_name=packet.company.name,
        collected_at=packet.collected_at,
        analyst_report=state["analyst_report"],
        pulse_report=state["pulse_report"],
    )


__all__ = ["create_signals_graph", "run_company_signals"]
