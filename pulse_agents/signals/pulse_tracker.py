"""
Pulse tracker: meeting cadence, milestones and health signals for a company.

Pure function of the packet. Elapsed-time checks are measured against the
packet's ``collected_at``.
"""

from __future__ import annotations

import math
import re
from dataclasses import dataclass
from datetime import date
from statistics import fmean, pstdev
from typing import Dict, List, Optional, Sequence, Tuple

from portfolio_pulse.schemas import CompanyDataPacket, SessionRecord
from portfolio_pulse.schemas.reports import (
    DedicatedMentorEngagement,
    EngagementArea,
    ExpertRequestActivity,
    HealthSignal,
    MeetingCadence,
    MentoringRegularity,
    Milestone,
    MilestoneCategory,
    MilestoneSource,
    MonthCount,
    ProgramEngagement,
    PulseReport,
    QualitativeAssessment,
    SessionTypeCount,
)
from pulse_agents.signals.lexicon import DEFAULT_LEXICON, Lexicon, milestone_regex
from pulse_agents.signals.text import (
    as_utc,
    format_number,
    month_key,
    parse_day,
    round_half_up,
    round_int,
    shift_months,
    split_sentences,
    truncate,
)

MILESTONE_LIMIT = 15
MILESTONE_TITLE_LENGTH = 60
RECENT_MONTHS = 3
RETROSPECTIVE_WINDOW_DAYS = 90
REGULAR_MENTOR_INTERVAL_DAYS = 45
UNTYPED_SESSION = "other"
_NO_MENTOR = {"", "none", "n/a", "-"}
_MENTOR_SPLIT = re.compile(r"[,，]")


def generate_pulse_report(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> PulseReport:
    today = as_utc(packet.collected_at).date()
    cadence = analyze_meeting_cadence(packet.sessions)
    engagement = assess_program_engagement(packet, lexicon, today)
    qualitative = build_qualitative_assessment(packet, cadence, lexicon, today)
    return PulseReport(
        meeting_cadence=cadence,
        milestones=extract_milestones(packet, lexicon),
        health_signals=assess_health(packet, cadence, engagement, lexicon, today),
        program_engagement=engagement,
        qualitative_assessment=qualitative,
        summary=build_summary(qualitative, cadence),
    )


# ── Meeting cadence ─────────────────────────────────────────────


def _dated_sessions(sessions: Sequence[SessionRecord]) -> List[Tuple[date, SessionRecord]]:
    dated = [(parse_day(s.date), s) for s in sessions]
    return sorted(
        ((day, session) for day, session in dated if day is not None),
        key=lambda pair: pair[0],
    )


def _intervals(days: Sequence[date]) -> List[int]:
    gaps = [(later - earlier).days for earlier, later in zip(days, days[1:])]
    return [gap for gap in gaps if gap >= 0]


def density_label(score: int) -> str:
    if score >= 80:
        return "very active"
    if score >= 50:
        return "adequate"
    if score >= 30:
        return "loose"
    return "warning"


def classify_trend(intervals: Sequence[int]) -> Tuple[Optional[str], str]:
    """Ratio of second-half to first-half mean, overridden by dispersion.

    Needs at least three intervals. When the population standard deviation
    reaches 0.8 of the mean the series is "irregular" whatever the ratio says.
    """
    if len(intervals) < 3:
        return None, f"insufficient history: {len(intervals) + 1} sessions"

    middle = len(intervals) // 2
    first_avg = fmean(intervals[:middle])
    second_avg = fmean(intervals[middle:])
    mean = fmean(intervals)

    if first_avg == 0:
        ratio = math.inf if second_avg > 0 else 1.0
    else:
        ratio = second_avg / first_avg

    if ratio < 0.7:
        trend = "accelerating"
        reason = f"meetings speeding up: every {round_int(first_avg)} -> {round_int(second_avg)} days"
    elif ratio > 1.5:
        trend = "slowing"
        reason = f"meetings slowing down: every {round_int(first_avg)} -> {round_int(second_avg)} days"
    else:
        trend = "stable"
        reason = f"steady at about every {format_number(round_half_up(mean, 1))} days"

    # Inclusive so [5, 5, 45, 45] (stddev exactly 0.8 of the mean) reads as irregular;
    # 5 * stddev >= 4 * mean keeps that boundary exact in floating point.
    if mean > 0 and 5 * pstdev(intervals) >= 4 * mean:
        trend = "irregular"
        reason = f"intervals vary between {min(intervals)} and {max(intervals)} days"
    return trend, reason


def analyze_meeting_cadence(sessions: Sequence[SessionRecord]) -> MeetingCadence:
    dated = _dated_sessions(sessions)
    if not dated:
        return MeetingCadence(trend="irregular", trend_reason="no sessions recorded")

    days = [day for day, _ in dated]
    intervals = _intervals(days)
    avg_interval = round_half_up(fmean(intervals), 1) if intervals else 0.0
    recent_interval = round_half_up(fmean(intervals[-3:]), 1) if intervals else 0.0
    period_months = max(1, round_int((days[-1] - days[0]).days / 30))

    if intervals:
        trend, trend_reason = classify_trend(intervals)
    else:
        trend, trend_reason = None, "insufficient history: 1 session"

    type_counts: Dict[str, int] = {}
    type_last: Dict[str, str] = {}
    for day, session in dated:
        for kind in session.session_types or (UNTYPED_SESSION,):
            type_counts[kind] = type_counts.get(kind, 0) + 1
            type_last[kind] = day.isoformat()
    by_type = [
        SessionTypeCount(type=kind, count=count, last_date=type_last[kind])
        for kind, count in sorted(type_counts.items(), key=lambda item: -item[1])
    ]

    expected_weeks = period_months * 4.3
    density_score = min(100, round_int(len(dated) / max(expected_weeks, 1) * 100))

    return MeetingCadence(
        avg_interval_days=avg_interval,
        recent_interval_days=recent_interval,
        trend=trend,
        trend_reason=trend_reason,
        total_sessions=len(dated),
        period_months=period_months,
        by_type=by_type,
        density_score=density_score,
        density_label=density_label(density_score),
    )


# ── Milestones ──────────────────────────────────────────────────


def _milestone_title(text: str, category: MilestoneCategory, lexicon: Lexicon) -> str:
    pattern = milestone_regex(lexicon.milestone_patterns[category])
    for sentence in split_sentences(text):
        if pattern.search(sentence):
            return truncate(sentence, MILESTONE_TITLE_LENGTH)
    return truncate(" ".join(text.split()), MILESTONE_TITLE_LENGTH)


def extract_milestones(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> List[Milestone]:
    """Scan free text for categorized events, newest first."""
    candidates: List[Tuple[str, str, MilestoneSource, Optional[str]]] = []
    for session in packet.sessions:
        text = "\n".join(part for part in (session.summary, session.follow_up) if part)
        candidates.append((session.date, text, "session", session.title or None))
    for review in packet.retrospectives:
        candidates.append((review.review_date, review.keep, "retrospective", None))
    for request in packet.expert_requests:
        if not lexicon.is_completed(request.status):
            continue
        text = "\n".join(
            part for part in (request.one_liner, request.problem, request.core_question) if part
        )
        candidates.append((request.requested_at, text, "expert_request", request.one_liner or None))

    milestones: List[Milestone] = []
    seen: set[Tuple[str, str]] = set()
    for raw_date, text, source, detail in candidates:
        day = parse_day(raw_date)
        if day is None or not text.strip():
            continue
        category = lexicon.milestone_category(text)
        if category is None:
            continue
        key = (day.isoformat(), category)
        if key in seen:
            continue
        seen.add(key)
        milestones.append(
            Milestone(
                date=day.isoformat(),
                title=_milestone_title(text, category, lexicon),
                category=category,
                source=source,
                detail=detail,
            )
        )

    milestones.sort(key=lambda milestone: milestone.date, reverse=True)
    return milestones[:MILESTONE_LIMIT]


# ── Health signals ──────────────────────────────────────────────


def assess_health(
    packet: CompanyDataPacket,
    cadence: MeetingCadence,
    engagement: ProgramEngagement,
    lexicon: Lexicon,
    today: date,
) -> List[HealthSignal]:
    signals: List[HealthSignal] = []

    active_areas = [area for area in engagement.breakdown if area.has_data]
    if active_areas:
        strong = ", ".join(area.area for area in active_areas if area.score >= 50)
        overall = engagement.overall_score
        signals.append(
            HealthSignal(
                signal="Program engagement",
                status="good" if overall >= 60 else "warning" if overall >= 30 else "concern",
                detail=f"{engagement.label} ({overall}): {strong or 'no active areas'}",
            )
        )

    score = cadence.density_score
    if cadence.total_sessions:
        density_detail = (
            f"{cadence.density_label}: {cadence.total_sessions} sessions over "
            f"{cadence.period_months} month(s), every "
            f"{format_number(cadence.avg_interval_days)} days on average"
        )
    else:
        density_detail = f"{cadence.density_label}: no sessions recorded"
    signals.append(
        HealthSignal(
            signal="Meeting density",
            status="good" if score >= 70 else "warning" if score >= 40 else "concern",
            detail=density_detail,
        )
    )

    if cadence.trend == "slowing":
        signals.append(HealthSignal(signal="Meeting cadence slowing", status="warning", detail=cadence.trend_reason))
    elif cadence.trend == "accelerating":
        signals.append(HealthSignal(signal="Meeting cadence accelerating", status="good", detail=cadence.trend_reason))

    session_days = [day for day, _ in _dated_sessions(packet.sessions)]
    if session_days:
        days_since = (today - session_days[-1]).days
        detail = f"{days_since} days since the last meeting"
        if days_since > 30:
            signals.append(HealthSignal(signal="Meeting gap", status="concern", detail=detail))
        elif days_since > 14:
            signals.append(HealthSignal(signal="Meeting interval", status="warning", detail=detail))

    if packet.retrospectives:
        review_days = [d for d in (parse_day(r.review_date) for r in packet.retrospectives) if d]
        recent = [d for d in review_days if (today - d).days <= RETROSPECTIVE_WINDOW_DAYS]
        if recent:
            signals.append(
                HealthSignal(
                    signal="Retrospective cadence",
                    status="good",
                    detail=f"{len(recent)} retrospective(s) in the last {RETROSPECTIVE_WINDOW_DAYS} days",
                )
            )
        else:
            signals.append(
                HealthSignal(
                    signal="Retrospective cadence",
                    status="warning",
                    detail=f"No retrospective in the last {RETROSPECTIVE_WINDOW_DAYS} days",
                )
            )

    open_requests = [r for r in packet.expert_requests if not lexicon.is_terminal(r.status)]
    if open_requests:
        signals.append(
            HealthSignal(
                signal="Expert resource utilization",
                status="good",
                detail=f"{len(open_requests)} expert request(s) in progress",
            )
        )

    items = packet.objective_items
    if items:
        achieved = sum(1 for item in items if item.achieved)
        rate = achieved / len(items)
        signals.append(
            HealthSignal(
                signal="Objective achievement",
                status="good" if rate >= 0.6 else "warning" if rate >= 0.3 else "concern",
                detail=f"{achieved}/{len(items)} objectives achieved ({round_int(rate * 100)}%)",
            )
        )

    for area in active_areas:
        if area.score == 0:
            signals.append(HealthSignal(signal=f"Unused {area.area}", status="concern", detail=area.detail))
    return signals


# ── Program engagement ──────────────────────────────────────────


@dataclass(frozen=True)
class _AreaScore:
    area: str
    score: int
    detail: str
    has_data: bool
    base_weight: float


def _within_months(raw: str, months: int, today: date) -> bool:
    day = parse_day(raw)
    return day is not None and day >= shift_months(today, -months)


def engagement_label(score: int, has_data: bool) -> str:
    if not has_data:
        return "not assessable"
    if score >= 70:
        return "highly engaged"
    if score >= 40:
        return "moderate"
    if score > 0:
        return "low"
    return "not participating"


def assess_program_engagement(
    packet: CompanyDataPacket, lexicon: Lexicon, today: date
) -> ProgramEngagement:
    """Weighted participation score over the areas that have any data."""
    sessions = packet.sessions
    recent_mentoring = [
        s
        for s in sessions
        if lexicon.is_mentoring_session(s.session_types) and _within_months(s.date, RECENT_MONTHS, today)
    ]
    expert_sessions = [s for s in sessions if lexicon.is_expert_session(s.session_types)]
    recent_reviews = [
        r for r in packet.retrospectives if _within_months(r.review_date, RECENT_MONTHS, today)
    ]
    requests = packet.expert_requests
    completed = sum(1 for r in requests if lexicon.is_completed(r.status))

    if sessions:
        mentoring_detail = (
            f"{len(recent_mentoring)} mentoring session(s) in the last {RECENT_MONTHS} months"
            if recent_mentoring
            else f"no mentoring in the last {RECENT_MONTHS} months"
        )
    else:
        mentoring_detail = "no data"
    if packet.retrospectives:
        review_detail = (
            f"{len(recent_reviews)} retrospective(s) in the last {RECENT_MONTHS} months"
            if recent_reviews
            else "retrospectives have stopped"
        )
    else:
        review_detail = "no data"
    if packet.objective_items:
        objective_detail = f"{len(packet.objective_items)} objective(s)" + (
            f", {len(packet.objective_values)} measurement(s)"
            if packet.objective_values
            else " without measurements"
        )
    else:
        objective_detail = "no data"

    areas = [
        _AreaScore(
            "mentoring",
            min(100, len(recent_mentoring) * 25) if sessions else 0,
            mentoring_detail,
            bool(sessions),
            0.30,
        ),
        _AreaScore(
            "expert deployment",
            min(100, len(expert_sessions) * 50),
            f"{len(expert_sessions)} expert deployment session(s)" if expert_sessions else "no data",
            bool(expert_sessions),
            0.20,
        ),
        _AreaScore(
            "retrospectives",
            min(100, len(recent_reviews) * 33) if packet.retrospectives else 0,
            review_detail,
            bool(packet.retrospectives),
            0.20,
        ),
        _AreaScore(
            "objectives",
            (100 if packet.objective_values else 50) if packet.objective_items else 0,
            objective_detail,
            bool(packet.objective_items),
            0.15,
        ),
        _AreaScore(
            "expert requests",
            min(100, len(requests) * 50),
            f"{len(requests)} request(s), {completed} completed" if requests else "no data",
            bool(requests),
            0.15,
        ),
    ]

    active_weight = sum(area.base_weight for area in areas if area.has_data)
    breakdown = [
        EngagementArea(
            area=area.area,
            score=area.score,
            detail=area.detail,
            has_data=area.has_data,
            weight=round_half_up(area.base_weight / active_weight, 2)
            if area.has_data and active_weight
            else 0.0,
        )
        for area in areas
    ]
    overall = (
        round_int(
            sum(area.score * area.base_weight / active_weight for area in areas if area.has_data)
        )
        if active_weight
        else 0
    )
    return ProgramEngagement(
        overall_score=overall,
        label=engagement_label(overall, active_weight > 0),
        breakdown=breakdown,
    )


# ── Qualitative assessment ──────────────────────────────────────


def assess_mentoring_regularity(
    sessions: Sequence[SessionRecord], today: date
) -> MentoringRegularity:
    """Sessions per calendar month over the current and two previous months."""
    session_months = [month_key(day) for day, _ in _dated_sessions(sessions)]
    breakdown = []
    for offset in range(RECENT_MONTHS):
        month = month_key(shift_months(today.replace(day=1), -offset))
        breakdown.append(MonthCount(month=month, count=session_months.count(month)))

    active = sum(1 for month in breakdown if month.count > 0)
    if active == 3:
        assessment = "Mentoring happened every month for the last 3 months; the rhythm is steady"
    elif active == 2:
        missing = next(month.month for month in breakdown if month.count == 0)
        assessment = f"Mostly monthly, but no meeting in {missing}"
    elif active == 1:
        assessment = "Only 1 of the last 3 months had mentoring; a regular rhythm is needed"
    else:
        assessment = "No mentoring in the last 3 months; check in right away"
    return MentoringRegularity(
        meets_monthly_target=active >= 2,
        recent_month_breakdown=breakdown,
        assessment=assessment,
    )


def assess_dedicated_mentor(packet: CompanyDataPacket, today: date) -> DedicatedMentorEngagement:
    mentor_name = packet.company.dedicated_mentor.strip()
    if mentor_name.casefold() in _NO_MENTOR:
        return DedicatedMentorEngagement(
            has_dedicated_mentor=False,
            assessment="No dedicated mentor assigned",
        )

    names = [name.strip() for name in _MENTOR_SPLIT.split(mentor_name) if name.strip()]
    meetings = [
        day
        for day, session in _dated_sessions(packet.sessions)
        if any(dedicated in attendee for attendee in session.mentor_names for dedicated in names)
    ]
    total = len(meetings)
    intervals = _intervals(meetings)
    avg_interval = round_int(fmean(intervals)) if intervals else None
    is_regular = avg_interval is not None and avg_interval <= REGULAR_MENTOR_INTERVAL_DAYS
    days_since = (today - meetings[-1]).days if meetings else None

    if total == 0:
        assessment = f"Dedicated mentor ({mentor_name}) assigned but no meetings recorded; set one up"
    elif is_regular and days_since is not None and days_since <= REGULAR_MENTOR_INTERVAL_DAYS:
        assessment = (
            f"Meeting dedicated mentor ({mentor_name}) regularly, every {avg_interval} days "
            f"on average ({total} meetings)"
        )
    elif is_regular:
        assessment = (
            f"Dedicated mentor ({mentor_name}) met regularly (every {avg_interval} days) "
            f"but not in the last {days_since} days"
        )
    elif total >= 2:
        assessment = (
            f"{total} meetings with dedicated mentor ({mentor_name}) at irregular intervals "
            f"(every {avg_interval} days on average); set a regular schedule"
        )
    else:
        assessment = f"1 meeting with dedicated mentor ({mentor_name}); more are needed to build the relationship"

    return DedicatedMentorEngagement(
        has_dedicated_mentor=True,
        mentor_name=mentor_name,
        total_meetings=total,
        last_meeting_date=meetings[-1].isoformat() if meetings else None,
        is_regular=is_regular,
        avg_interval_days=avg_interval,
        assessment=assessment,
    )


def assess_expert_request_activity(
    packet: CompanyDataPacket, lexicon: Lexicon
) -> ExpertRequestActivity:
    total = len(packet.expert_requests)
    completed = sum(1 for r in packet.expert_requests if lexicon.is_completed(r.status))
    if total == 0:
        assessment = "Expert requests not used yet; point the company to the expert pool"
    elif total >= 3:
        assessment = f"{total} requests ({completed} completed); expert resources are used actively"
    else:
        assessment = f"{total} request(s) ({completed} completed); room to use expert resources more"
    return ExpertRequestActivity(
        total_requests=total, completed_requests=completed, assessment=assessment
    )


def build_qualitative_assessment(
    packet: CompanyDataPacket,
    cadence: MeetingCadence,
    lexicon: Lexicon,
    today: date,
) -> QualitativeAssessment:
    regularity = assess_mentoring_regularity(packet.sessions, today)
    mentor = assess_dedicated_mentor(packet, today)
    expert = assess_expert_request_activity(packet, lexicon)

    parts = [
        "Mentoring runs at least monthly"
        if regularity.meets_monthly_target
        else "Mentoring happens less than monthly and needs closer management"
    ]
    if mentor.has_dedicated_mentor:
        if mentor.is_regular:
            parts.append("regular meetings with the dedicated mentor are a good sign")
        elif mentor.total_meetings:
            parts.append("meetings with the dedicated mentor need a regular rhythm")
        else:
            parts.append("the dedicated mentor has no recorded meetings")
    if expert.total_requests >= 2:
        parts.append("expert resources are well used")
    elif expert.total_requests == 0:
        parts.append("expert resources are unused")
    if cadence.trend == "slowing":
        parts.append("meeting cadence is slowing and needs attention")
    elif cadence.trend == "accelerating":
        parts.append("meeting frequency is increasing")

    return QualitativeAssessment(
        mentoring_regularity=regularity,
        dedicated_mentor_engagement=mentor,
        expert_request_activity=expert,
        overall_narrative=". ".join(parts) + ".",
    )


def build_summary(qualitative: QualitativeAssessment, cadence: MeetingCadence) -> str:
    parts = [
        "mentoring on track"
        if qualitative.mentoring_regularity.meets_monthly_target
        else "mentoring cadence needs review"
    ]
    mentor = qualitative.dedicated_mentor_engagement
    if mentor.has_dedicated_mentor:
        parts.append("dedicated mentor regular" if mentor.is_regular else "dedicated mentor irregular")
    requests = qualitative.expert_request_activity.total_requests
    parts.append(f"{requests} expert request(s)" if requests else "no expert requests")
    if cadence.trend == "slowing":
        parts.append("cadence slowing")
    elif cadence.trend == "accelerating":
        parts.append("cadence accelerating")
    return " · ".join(parts)


__all__ = [
    "analyze_meeting_cadence",
    "assess_health",
    "assess_program_engagement",
    "build_qualitative_assessment",
    "classify_trend",
    "extract_milestones",
    "generate_pulse_report",
]
