"""Public schema exports."""

from .records import (
    BatchDashboard,
    BatchDashboardEntry,
    CompanyDataPacket,
    CompanyProfile,
    ExpertRequestRecord,
    ObjectiveItem,
    ObjectiveValue,
    PriorAnalysis,
    RetrospectiveRecord,
    SessionRecord,
)
from .reports import (
    AnalystReport,
    CompanySignals,
    HealthSignal,
    MeetingCadence,
    Milestone,
    PulseReport,
)

__all__ = [
    "AnalystReport",
    "BatchDashboard",
    "BatchDashboardEntry",
    "CompanyDataPacket",
    "CompanyProfile",
    "CompanySignals",
    "ExpertRequestRecord",
    "HealthSignal",
    "MeetingCadence",
    "Milestone",
    "ObjectiveItem",
    "ObjectiveValue",
    "PriorAnalysis",
    "PulseReport",
    "RetrospectiveRecord",
    "SessionRecord",
]
