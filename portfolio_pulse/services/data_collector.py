"""
Assemble the per-company data packet from the record store.
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional, Protocol, Sequence, TypeVar

from portfolio_pulse.schemas import (
    BatchDashboard,
    CompanyDataPacket,
    CompanyProfile,
    ExpertRequestRecord,
    ObjectiveItem,
    ObjectiveValue,
    PriorAnalysis,
    RetrospectiveRecord,
    SessionRecord,
)
from portfolio_pulse.services.record_cache import NullRecordCache, RecordCache

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ENRICHMENT_TIMEOUT_SECONDS = 8.0


class RecordStore(Protocol):
    async def get_company(self, company_id: str) -> Optional[CompanyProfile]: ...

    async def list_sessions(self, company_id: str) -> Sequence[SessionRecord]: ...

    async def list_expert_requests(self, company_id: str) -> Sequence[ExpertRequestRecord]: ...

    async def list_retrospectives(self, company_id: str) -> Sequence[RetrospectiveRecord]: ...

    async def list_objective_items(self, company_id: str) -> Sequence[ObjectiveItem]: ...

    async def list_objective_values(self, company_id: str) -> Sequence[ObjectiveValue]: ...

    async def get_batch_dashboard(self, company: CompanyProfile) -> Optional[BatchDashboard]: ...


class AnalysisArchive(Protocol):
    async def list_for_company(self, company_id: str) -> Sequence[PriorAnalysis]: ...


class DataCollector:
    """Build an immutable ``CompanyDataPacket`` for one company."""

    def __init__(
        self,
        store: RecordStore,
        *,
        archive: AnalysisArchive | None = None,
        cache: RecordCache | None = None,
        enrichment_timeout_seconds: float = DEFAULT_ENRICHMENT_TIMEOUT_SECONDS,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._store = store
        self._archive = archive
        self._cache = cache if cache is not None else NullRecordCache()
        self._enrichment_timeout = enrichment_timeout_seconds
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    async def collect(self, company_id: str) -> Optional[CompanyDataPacket]:
        """Return the packet, or ``None`` when the company profile is unknown.

        Session and expert-request failures degrade to empty collections;
        the batch dashboard is optional and bounded by a timeout. Any other
        failure propagates.
        """
        started = time.perf_counter()
        (
            company,
            sessions,
            expert_requests,
            prior_analyses,
            retrospectives,
            objective_items,
            objective_values,
        ) = await asyncio.gather(
            self._cached("company", company_id, self._store.get_company),
            self._tolerant(
                "sessions", company_id, self._cached("sessions", company_id, self._store.list_sessions)
            ),
            self._tolerant(
                "expert requests",
                company_id,
                self._cached("expert_requests", company_id, self._store.list_expert_requests),
            ),
            self._prior_analyses(company_id),
            self._cached("retrospectives", company_id, self._store.list_retrospectives),
            self._cached("objective_items", company_id, self._store.list_objective_items),
            self._cached("objective_values", company_id, self._store.list_objective_values),
        )

        if company is None:
            logger.info("Company %s not found in record store", company_id)
            return None

        batch_dashboard = await self._batch_dashboard(company)

        packet = CompanyDataPacket(
            company=company,
            sessions=tuple(sessions),
            expert_requests=tuple(expert_requests),
            retrospectives=tuple(retrospectives),
            objective_items=tuple(objective_items),
            objective_values=tuple(objective_values),
            prior_analyses=tuple(prior_analyses),
            batch_dashboard=batch_dashboard,
            collected_at=self._clock(),
        )
        logger.info(
            "Collected %s: sessions=%d expert_requests=%d retrospectives=%d "
            "objective_items=%d objective_values=%d prior_analyses=%d "
            "batch_dashboard=%s in %.0fms",
            company_id,
            len(packet.sessions),
            len(packet.expert_requests),
            len(packet.retrospectives),
            len(packet.objective_items),
            len(packet.objective_values),
            len(packet.prior_analyses),
            "yes" if batch_dashboard else "no",
            (time.perf_counter() - started) * 1000,
        )
        return packet

    def invalidate(self, company_id: str) -> int:
        return self._cache.invalidate(company_id)

    def clear(self) -> None:
        self._cache.clear()

    async def _cached(
        self, kind: str, company_id: str, fetch: Callable[[str], Awaitable[T]]
    ) -> T:
        return await self._cache.get_or_fetch(
            f"{kind}:{company_id}", lambda: fetch(company_id)
        )

    @staticmethod
    async def _tolerant(label: str, company_id: str, fetch: Awaitable[Sequence[T]]) -> Sequence[T]:
        try:
            return await fetch
        except Exception as exc:
            logger.warning("Fetching %s for %s failed; using empty list: %s", label, company_id, exc)
            return ()

    async def _prior_analyses(self, company_id: str) -> Sequence[PriorAnalysis]:
        if self._archive is None:
            return ()
        return await self._cached("prior_analyses", company_id, self._archive.list_for_company)

    async def _batch_dashboard(self, company: CompanyProfile) -> Optional[BatchDashboard]:
        fetch = self._cache.get_or_fetch(
            f"batch_dashboard:{company.company_id}",
            lambda: self._store.get_batch_dashboard(company),
        )
        try:
            return await asyncio.wait_for(fetch, timeout=self._enrichment_timeout)
        except asyncio.TimeoutError:
            logger.info(
                "Batch dashboard for %s timed out after %.1fs",
                company.company_id,
                self._enrichment_timeout,
            )
        except Exception as exc:
            logger.warning("Batch dashboard for %s unavailable: %s", company.company_id, exc)
        return None


__all__ = ["AnalysisArchive", "DataCollector", "RecordStore"]
