"""
FastAPI routes exposing company signals.
"""

from __future__ import annotations

import logging
from http import HTTPStatus
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException

from portfolio_pulse.dependencies import get_data_collector, get_signals_graph
from portfolio_pulse.schemas import CompanySignals
from portfolio_pulse.services import DataCollector
from pulse_agents.signals.graph import run_company_signals

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health", status_code=HTTPStatus.OK)
async def healthcheck() -> dict:
    """Simple health endpoint for monitoring."""
    return {"status": "ok"}


@router.get(
    "/companies/{company_id}/signals",
    status_code=HTTPStatus.OK,
    response_model=CompanySignals,
    response_model_by_alias=True,
)
async def get_company_signals(
    company_id: str,
    graph: Annotated[Any, Depends(get_signals_graph)],
) -> CompanySignals:
    """Collect the company's records and return both reports."""
    signals = await run_company_signals(graph, company_id)
    if signals is None:
        raise HTTPException(
            status_code=HTTPStatus.NOT_FOUND,
            detail=f"Company {company_id} not found",
        )
    return signals


@router.post("/companies/{company_id}/refresh", status_code=HTTPStatus.OK)
async def refresh_company_records(
    company_id: str,
    collector: Annotated[DataCollector, Depends(get_data_collector)],
) -> dict:
    """Drop cached records so the next signals request refetches them."""
    invalidated = collector.invalidate(company_id)
    logger.info("Invalidated %d cached record set(s) for %s", invalidated, company_id)
    return {"invalidated": invalidated}


__all__ = ["router"]
