"""Read-only record store backed by Notion databases."""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

import httpx
from pydantic import ValidationError

from portfolio_pulse.clients.notion_properties import (
    get_checkbox,
    get_created_time,
    get_date,
    get_multi_select,
    get_number,
    get_relation_ids,
    get_text,
    get_title,
    page_title,
)
from portfolio_pulse.core.config import NotionSettings
from portfolio_pulse.schemas import (
    BatchDashboard,
    BatchDashboardEntry,
    CompanyProfile,
    ExpertRequestRecord,
    ObjectiveItem,
    ObjectiveValue,
    RetrospectiveRecord,
    SessionRecord,
)
from portfolio_pulse.utils.http import RetryConfig, request_with_retry

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Notion property names, kept in one place so schema renames touch only this table.
PROPERTIES: Dict[str, Dict[str, str]] = {
    "company": {
        "name": "Company Name",
        "description": "Description",
        "product_intro": "Product Intro",
        "batch_label": "Batch Label",
        "batch_name": "Batch Name",
        "batch_start_date": "Batch Start Date",
        "achievement_rate": "Achievement Rate",
        "dedicated_mentor": "Dedicated Mentor",
    },
    "session": {
        "title": "Meeting Title",
        "date": "Date",
        "session_types": "Session Type",
        "summary": "Summary",
        "follow_up": "Follow-up",
        "company": "Companies",
        "mentors": "Mentors",
    },
    "expert_request": {
        "title": "Request Title",
        "status": "Status",
        "urgency": "Urgency",
        "support_types": "Support Type",
        "one_liner": "One-liner",
        "problem": "Problem",
        "core_question": "Core Question",
        "desired_expertise": "Desired Expertise",
        "requested_at": "Created",
        "company": "Company",
    },
    "retrospective": {
        "review_date": "Review Date",
        "keep": "Keep",
        "problem": "Problem",
        "try": "Try",
        "company": "Company",
    },
    "objective_item": {
        "name": "Objective",
        "level": "Level",
        "target_value": "Target Value",
        "achieved": "Achieved",
        "achievement_rate": "Achievement Rate",
        "company": "Company",
    },
    "objective_value": {
        "objective_item": "Objective Item",
        "period": "Period",
        "current_value": "Current Value",
        "target_value": "Target Value",
        "company": "Company",
    },
    "batch_dashboard": {
        "company_name": "Company Name",
        "batch": "Batch",
        "metric": "Metric",
        "value": "Value",
        "period": "Period",
    },
}

_PAGE_SIZE = 100
_NUMBER_RE = re.compile(r"-?\d+(?:\.\d+)?")


class RecordStoreError(RuntimeError):
    """Raised when the record store is misconfigured."""


class NotionRecordStore:
    """Fetch company records from Notion and map them to record models."""

    def __init__(
        self,
        settings: NotionSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        retry_config: RetryConfig | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._retry_config = retry_config or RetryConfig(label="notion")

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=str(self._settings.api_url).rstrip("/"),
            headers={
                "Authorization": f"Bearer {self._settings.api_key}",
                "Notion-Version": self._settings.api_version,
            },
            timeout=self._settings.timeout_seconds,
            transport=self._transport,
        )

    async def get_company(self, company_id: str) -> Optional[CompanyProfile]:
        """Return the company profile, or ``None`` when the page does not exist."""
        page = await self._retrieve_page(company_id)
        if page is None or page.get("archived"):
            return None
        return _map_company(page)

    async def list_sessions(self, company_id: str) -> List[SessionRecord]:
        pages = await self._query_database(
            self._settings.sessions_db_id,
            filter_=_relation_filter(PROPERTIES["session"]["company"], company_id),
            sorts=[{"property": PROPERTIES["session"]["date"], "direction": "descending"}],
        )
        mentor_ids = {
            mentor_id
            for page in pages
            for mentor_id in get_relation_ids(
                page.get("properties") or {}, PROPERTIES["session"]["mentors"]
            )
        }
        mentor_names = await self._resolve_titles(mentor_ids)
        return _safe_map(
            pages, lambda page: _map_session(page, mentor_names), label="session"
        )

    async def list_expert_requests(self, company_id: str) -> List[ExpertRequestRecord]:
        pages = await self._query_database(
            self._settings.expert_requests_db_id,
            filter_=_relation_filter(PROPERTIES["expert_request"]["company"], company_id),
        )
        return _safe_map(pages, _map_expert_request, label="expert request")

    async def list_retrospectives(self, company_id: str) -> List[RetrospectiveRecord]:
        pages = await self._query_database(
            self._settings.retrospectives_db_id,
            filter_=_relation_filter(PROPERTIES["retrospective"]["company"], company_id),
        )
        return _safe_map(pages, _map_retrospective, label="retrospective")

    async def list_objective_items(self, company_id: str) -> List[ObjectiveItem]:
        pages = await self._query_database(
            self._settings.objective_items_db_id,
            filter_=_relation_filter(PROPERTIES["objective_item"]["company"], company_id),
        )
        return _safe_map(pages, _map_objective_item, label="objective item")

    async def list_objective_values(self, company_id: str) -> List[ObjectiveValue]:
        pages = await self._query_database(
            self._settings.objective_values_db_id,
            filter_=_relation_filter(PROPERTIES["objective_value"]["company"], company_id),
        )
        return _safe_map(pages, _map_objective_value, label="objective value")

    async def get_batch_dashboard(self, company: CompanyProfile) -> Optional[BatchDashboard]:
        """Dashboard rows of the company's batch, matched on company name."""
        database_id = self._settings.batch_dashboard_db_id
        if not database_id or not company.batch_label:
            return None
        names = PROPERTIES["batch_dashboard"]
        pages = await self._query_database(
            database_id,
            filter_={"property": names["batch"], "select": {"equals": company.batch_label}},
        )
        entries: List[BatchDashboardEntry] = []
        for page in pages:
            props = page.get("properties") or {}
            entry_name = get_text(props, names["company_name"])
            if not _names_match(entry_name, company.name):
                continue
            value = get_text(props, names["value"])
            if not value:
                number = get_number(props, names["value"])
                value = "" if number is None else f"{number:g}"
            entries.append(
                BatchDashboardEntry(
                    company_name=entry_name,
                    metric=get_text(props, names["metric"]),
                    value=value,
                    period=get_text(props, names["period"]) or get_date(props, names["period"]),
                )
            )
        if not entries:
            return None
        return BatchDashboard(batch_label=company.batch_label, entries=entries)

    async def _retrieve_page(self, page_id: str) -> Optional[Dict[str, Any]]:
        async with self._client() as client:
            try:
                response = await request_with_retry(
                    client.get, f"/pages/{page_id}", retry_config=self._retry_config
                )
            except httpx.HTTPStatusError as exc:
                if exc.response.status_code in (400, 404):
                    return None
                raise
        return response.json()

    async def _query_database(
        self,
        database_id: str,
        *,
        filter_: Dict[str, Any] | None = None,
        sorts: List[Dict[str, Any]] | None = None,
    ) -> List[Dict[str, Any]]:
        """Collect every page of a database query, following cursors."""
        if not database_id:
            raise RecordStoreError("Notion database id is not configured")

        pages: List[Dict[str, Any]] = []
        cursor: str | None = None
        async with self._client() as client:
            while True:
                body: Dict[str, Any] = {"page_size": _PAGE_SIZE}
                if filter_:
                    body["filter"] = filter_
                if sorts:
                    body["sorts"] = sorts
                if cursor:
                    body["start_cursor"] = cursor
                response = await request_with_retry(
                    client.post,
                    f"/databases/{database_id}/query",
                    json=body,
                    retry_config=self._retry_config,
                )
                payload = response.json()
                pages.extend(payload.get("results") or [])
                cursor = payload.get("next_cursor") if payload.get("has_more") else None
                if not cursor:
                    break
        return pages

    async def _resolve_titles(self, page_ids: Iterable[str]) -> Dict[str, str]:
        ids = sorted(set(page_ids))
        if not ids:
            return {}
        pages = await asyncio.gather(
            *(self._retrieve_page(page_id) for page_id in ids), return_exceptions=True
        )
        titles: Dict[str, str] = {}
        for page_id, page in zip(ids, pages):
            if isinstance(page, BaseException):
                logger.warning("Could not resolve relation %s: %s", page_id, page)
                continue
            if page:
                titles[page_id] = page_title(page)
        return titles


def _relation_filter(property_name: str, page_id: str) -> Dict[str, Any]:
    return {"property": property_name, "relation": {"contains": page_id}}


def _names_match(candidate: str, company_name: str) -> bool:
    if not candidate or not company_name:
        return False
    return candidate in company_name or company_name in candidate


def _safe_map(
    pages: List[Dict[str, Any]], mapper: Callable[[Dict[str, Any]], T], *, label: str
) -> List[T]:
    """Map pages, skipping the ones that cannot be parsed."""
    results: List[T] = []
    for page in pages:
        try:
            results.append(mapper(page))
        except (KeyError, TypeError, ValueError, ValidationError) as exc:
            logger.warning("Skipping unparsable %s page %s: %s", label, page.get("id"), exc)
    return results


def _parse_rate(props: Dict[str, Any], key: str) -> float | str | None:
    number = get_number(props, key)
    if number is not None:
        return number
    return get_text(props, key) or None


def _map_company(page: Dict[str, Any]) -> CompanyProfile:
    props = page.get("properties") or {}
    names = PROPERTIES["company"]
    rate = _parse_rate(props, names["achievement_rate"])
    if isinstance(rate, str):
        match = _NUMBER_RE.search(rate)
        rate = float(match.group()) if match else None
    return CompanyProfile(
        company_id=page["id"],
        name=get_title(props, names["name"]) or page_title(page),
        batch_label=get_text(props, names["batch_label"]),
        batch_name=get_text(props, names["batch_name"]),
        batch_start_date=get_date(props, names["batch_start_date"]),
        achievement_rate=rate,
        description=get_text(props, names["description"]),
        product_intro=get_text(props, names["product_intro"]),
        dedicated_mentor=get_text(props, names["dedicated_mentor"]),
    )


def _map_session(page: Dict[str, Any], mentor_names: Dict[str, str]) -> SessionRecord:
    props = page.get("properties") or {}
    names = PROPERTIES["session"]
    mentors = [
        mentor_names[mentor_id]
        for mentor_id in get_relation_ids(props, names["mentors"])
        if mentor_names.get(mentor_id)
    ]
    return SessionRecord(
        record_id=page["id"],
        date=get_date(props, names["date"]),
        title=get_title(props, names["title"]),
        summary=get_text(props, names["summary"]),
        follow_up=get_text(props, names["follow_up"]),
        session_types=get_multi_select(props, names["session_types"]),
        mentor_names=mentors,
    )


def _map_expert_request(page: Dict[str, Any]) -> ExpertRequestRecord:
    props = page.get("properties") or {}
    names = PROPERTIES["expert_request"]
    return ExpertRequestRecord(
        record_id=page["id"],
        title=get_title(props, names["title"]),
        status=get_text(props, names["status"]),
        urgency=get_text(props, names["urgency"]),
        requested_at=get_created_time(props, names["requested_at"])
        or page.get("created_time"),
        one_liner=get_text(props, names["one_liner"]),
        problem=get_text(props, names["problem"]),
        core_question=get_text(props, names["core_question"]),
        desired_expertise=get_text(props, names["desired_expertise"]),
        support_types=get_multi_select(props, names["support_types"]),
    )


def _map_retrospective(page: Dict[str, Any]) -> RetrospectiveRecord:
    props = page.get("properties") or {}
    names = PROPERTIES["retrospective"]
    return RetrospectiveRecord(
        record_id=page["id"],
        review_date=get_date(props, names["review_date"]),
        keep=get_text(props, names["keep"]),
        problem=get_text(props, names["problem"]),
        try_=get_text(props, names["try"]),
    )


def _map_objective_item(page: Dict[str, Any]) -> ObjectiveItem:
    props = page.get("properties") or {}
    names = PROPERTIES["objective_item"]
    return ObjectiveItem(
        record_id=page["id"],
        name=get_title(props, names["name"]),
        level=get_text(props, names["level"]),
        target_value=get_number(props, names["target_value"]),
        achieved=get_checkbox(props, names["achieved"]),
        achievement_rate=_parse_rate(props, names["achievement_rate"]),
    )


def _map_objective_value(page: Dict[str, Any]) -> ObjectiveValue:
    props = page.get("properties") or {}
    names = PROPERTIES["objective_value"]
    item_ids = get_relation_ids(props, names["objective_item"])
    target = get_text(props, names["target_value"])
    if not target:
        number = get_number(props, names["target_value"])
        target = "" if number is None else f"{number:g}"
    return ObjectiveValue(
        record_id=page["id"],
        objective_item_id=item_ids[0] if item_ids else "",
        period=get_text(props, names["period"]) or get_date(props, names["period"]),
        current_value=get_number(props, names["current_value"]),
        target_value=target,
    )


__all__ = ["NotionRecordStore", "PROPERTIES", "RecordStoreError"]
