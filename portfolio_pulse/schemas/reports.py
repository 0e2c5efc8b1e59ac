"""
Pydantic models for the analytical report, the pulse report and the envelope
returned to callers.

Reports serialize with camelCase aliases so downstream renderers receive the
same field names regardless of the language they are written in.
"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

Severity = Literal["high", "medium", "low"]
Trend = Literal["accelerating", "stable", "slowing", "irregular"]
MilestoneCategory = Literal["Achievement", "Inflection", "Decision", "Risk", "External"]
MilestoneSource = Literal["session", "retrospective", "expert_request"]
SignalStatus = Literal["good", "warning", "concern"]


class ReportModel(BaseModel):
    """Base for report sections."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Analyst report ──────────────────────────────────────────────


class ObjectiveDiagnostic(ReportModel):
    name: str
    level: str
    achievement_rate: Optional[float] = None
    achieved: bool = False
    has_values: bool = False
    latest_value: Optional[float] = None
    target_value: Optional[float] = None


class ObjectiveAnalysis(ReportModel):
    overall_rate: Optional[float] = None
    objectives: list[ObjectiveDiagnostic] = Field(default_factory=list)
    has_gap: bool = False
    gap_detail: Optional[str] = None


class KeywordCount(ReportModel):
    keyword: str
    count: int
    last_seen: str


class RecurringTopic(ReportModel):
    topic: str
    sessions: list[str] = Field(
        default_factory=list, description="Dates of example sessions, newest first."
    )
    frequency: int


class TopicAnalysis(ReportModel):
    top_keywords: list[KeywordCount] = Field(default_factory=list)
    recurring_topics: list[RecurringTopic] = Field(default_factory=list)
    recent_focus: list[str] = Field(default_factory=list)


class MentorActivity(ReportModel):
    name: str
    session_count: int
    last_date: str


class AdviceTheme(ReportModel):
    theme: str
    count: int
    examples: list[str] = Field(default_factory=list)


class MentorPatterns(ReportModel):
    mentors: list[MentorActivity] = Field(default_factory=list)
    advice_themes: list[AdviceTheme] = Field(default_factory=list)
    follow_up_rate: float = 0.0


class StatusCount(ReportModel):
    status: str
    count: int


class ExpertAnalysis(ReportModel):
    total: int = 0
    by_status: list[StatusCount] = Field(default_factory=list)
    avg_resolution_days: Optional[int] = None
    resolution_days_is_approximate: bool = Field(
        True,
        description=(
            "Resolution days are measured from request to snapshot time because "
            "no completion timestamp is recorded."
        ),
    )
    demand_areas: list[str] = Field(default_factory=list)
    pending_urgent: int = 0


class RetrospectivePatterns(ReportModel):
    total_reviews: int = 0
    recent_keep: list[str] = Field(default_factory=list)
    recent_problem: list[str] = Field(default_factory=list)
    recent_try: list[str] = Field(default_factory=list)
    recurring_problems: list[str] = Field(default_factory=list)


class DataGap(ReportModel):
    area: str
    detail: str
    severity: Severity


class MonthlyActivity(ReportModel):
    month: str
    session_count: int = 0
    retrospective_count: int = 0
    expert_request_count: int = 0


class AnalystReport(ReportModel):
    """Deterministic analysis of one company's data packet."""

    objective_analysis: ObjectiveAnalysis
    topic_analysis: TopicAnalysis
    mentor_patterns: MentorPatterns
    expert_analysis: ExpertAnalysis
    retrospective_patterns: RetrospectivePatterns
    data_gaps: list[DataGap] = Field(default_factory=list)
    activity_timeline: list[MonthlyActivity] = Field(default_factory=list)
    narrative_context: str = ""


# ── Pulse report ────────────────────────────────────────────────


class SessionTypeCount(ReportModel):
    type: str
    count: int
    last_date: str


class MeetingCadence(ReportModel):
    avg_interval_days: float = 0.0
    recent_interval_days: float = 0.0
    trend: Optional[Trend] = None
    trend_reason: str = ""
    total_sessions: int = 0
    period_months: int = 0
    by_type: list[SessionTypeCount] = Field(default_factory=list)
    density_score: int = 0
    density_label: str = "warning"


class Milestone(ReportModel):
    date: str
    title: str
    category: MilestoneCategory
    source: MilestoneSource
    detail: Optional[str] = None


class HealthSignal(ReportModel):
    signal: str
    status: SignalStatus
    detail: str


class EngagementArea(ReportModel):
    area: str
    score: int
    detail: str
    has_data: bool
    weight: float = Field(0.0, description="Redistributed weight; 0 when excluded.")


class ProgramEngagement(ReportModel):
    overall_score: int = 0
    label: str = "not assessable"
    breakdown: list[EngagementArea] = Field(default_factory=list)


class MonthCount(ReportModel):
    month: str
    count: int


class MentoringRegularity(ReportModel):
    meets_monthly_target: bool
    recent_month_breakdown: list[MonthCount] = Field(default_factory=list)
    assessment: str


class DedicatedMentorEngagement(ReportModel):
    has_dedicated_mentor: bool
    mentor_name: Optional[str] = None
    total_meetings: int = 0
    last_meeting_date: Optional[str] = None
    is_regular: bool = False
    avg_interval_days: Optional[int] = None
    assessment: str


class ExpertRequestActivity(ReportModel):
    total_requests: int = 0
    completed_requests: int = 0
    assessment: str


class QualitativeAssessment(ReportModel):
    mentoring_regularity: MentoringRegularity
    dedicated_mentor_engagement: DedicatedMentorEngagement
    expert_request_activity: ExpertRequestActivity
    overall_narrative: str


class PulseReport(ReportModel):
    """Time-series health view of one company's engagement."""

    meeting_cadence: MeetingCadence
    milestones: list[Milestone] = Field(default_factory=list)
    health_signals: list[HealthSignal] = Field(default_factory=list)
    program_engagement: ProgramEngagement
    qualitative_assessment: QualitativeAssessment
    summary: str = ""


class CompanySignals(ReportModel):
    """Both reports for a company, as handed to the narrative assembler."""

    company_id: str
    company_name: str
    collected_at: datetime
    analyst_report: AnalystReport
    pulse_report: PulseReport


__all__ = [
    "AdviceTheme",
    "AnalystReport",
    "CompanySignals",
    "DataGap",
    "DedicatedMentorEngagement",
    "EngagementArea",
    "ExpertAnalysis",
    "ExpertRequestActivity",
    "HealthSignal",
    "KeywordCount",
    "MeetingCadence",
    "MentorActivity",
    "MentorPatterns",
    "MentoringRegularity",
    "Milestone",
    "MilestoneCategory",
    "MonthCount",
    "MonthlyActivity",
    "ObjectiveAnalysis",
    "ObjectiveDiagnostic",
    "ProgramEngagement",
    "PulseReport",
    "QualitativeAssessment",
    "RecurringTopic",
    "RetrospectivePatterns",
    "SessionTypeCount",
    "SignalStatus",
    "StatusCount",
    "TopicAnalysis",
    "Trend",
]
