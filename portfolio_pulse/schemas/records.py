"""
Pydantic models for engagement records and the per-company data packet.

Records arrive from a schema-less source, so every text field defaults to an
empty string and every tag list to an empty tuple. ``None`` values supplied by
the source are dropped before validation so the defaults apply.
"""

from datetime import datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator


class RecordModel(BaseModel):
    """Immutable base for every record read from the record store."""

    model_config = ConfigDict(frozen=True, extra="ignore", populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_missing(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {key: value for key, value in data.items() if value is not None}
        return data


class CompanyProfile(RecordModel):
    """Portfolio company profile."""

    company_id: str = Field(..., description="Opaque identifier in the record store.")
    name: str = ""
    batch_label: str = Field("", description="Cohort label such as 'Batch 3'.")
    batch_name: str = ""
    batch_start_date: str = ""
    achievement_rate: Optional[float] = Field(
        None,
        description="Company-level objective-achievement override (percent).",
    )
    description: str = ""
    product_intro: str = ""
    dedicated_mentor: str = Field(
        "", description="Comma-separated names of the assigned mentor(s)."
    )


class SessionRecord(RecordModel):
    """A coaching or mentoring session."""

    record_id: str = ""
    date: str = Field("", description="Session date as ISO text (YYYY-MM-DD).")
    title: str = ""
    summary: str = ""
    follow_up: str = ""
    session_types: tuple[str, ...] = ()
    mentor_names: tuple[str, ...] = ()


class ExpertRequestRecord(RecordModel):
    """A request for an external expert or resource."""

    record_id: str = ""
    title: str = ""
    status: str = ""
    urgency: str = ""
    requested_at: str = Field("", description="Creation timestamp as ISO text.")
    one_liner: str = ""
    problem: str = ""
    core_question: str = ""
    desired_expertise: str = ""
    support_types: tuple[str, ...] = ()


class RetrospectiveRecord(RecordModel):
    """A Keep/Problem/Try retrospective entry."""

    record_id: str = ""
    review_date: str = ""
    keep: str = ""
    problem: str = ""
    try_: str = Field("", alias="try")


class ObjectiveItem(RecordModel):
    """An objective, milestone or action item with optional achievement data."""

    record_id: str = ""
    name: str = ""
    level: str = Field("", description="objective / milestone / action")
    target_value: Optional[float] = None
    achieved: Optional[bool] = None
    achievement_rate: Optional[Union[float, str]] = None


class ObjectiveValue(RecordModel):
    """A periodic measurement linked to an objective item."""

    record_id: str = ""
    objective_item_id: str = ""
    period: str = ""
    current_value: Optional[float] = None
    target_value: str = ""


class PriorAnalysis(RecordModel):
    """Previously generated analysis kept for context."""

    analysis_id: str
    company_id: str
    created_at: str = ""
    status: str = ""
    summary: str = ""


class BatchDashboardEntry(RecordModel):
    """One metric row from the cross-company batch dashboard."""

    company_name: str = ""
    metric: str = ""
    value: str = ""
    period: str = ""


class BatchDashboard(RecordModel):
    """Batch-level dashboard rows that belong to one company."""

    batch_label: str
    entries: tuple[BatchDashboardEntry, ...] = ()


class CompanyDataPacket(BaseModel):
    """Immutable snapshot of every record known for one company."""

    model_config = ConfigDict(frozen=True)

    company: CompanyProfile
    sessions: tuple[SessionRecord, ...] = ()
    expert_requests: tuple[ExpertRequestRecord, ...] = ()
    retrospectives: tuple[RetrospectiveRecord, ...] = ()
    objective_items: tuple[ObjectiveItem, ...] = ()
    objective_values: tuple[ObjectiveValue, ...] = ()
    prior_analyses: tuple[PriorAnalysis, ...] = ()
    batch_dashboard: Optional[BatchDashboard] = None
    collected_at: datetime


__all__ = [
    "BatchDashboard",
    "BatchDashboardEntry",
    "CompanyDataPacket",
    "CompanyProfile",
    "ExpertRequestRecord",
    "ObjectiveItem",
    "ObjectiveValue",
    "PriorAnalysis",
    "RecordModel",
    "RetrospectiveRecord",
    "SessionRecord",
]
