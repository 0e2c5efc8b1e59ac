"""
Deterministic analyst: turns a company data packet into an ``AnalystReport``.

No network calls and no model inference. "Now" is the packet's
``collected_at`` so the same packet always produces the same report.
"""

from __future__ import annotations

import math
from collections import Counter
from datetime import timedelta
from typing import Dict, List, Optional

from portfolio_pulse.schemas import CompanyDataPacket
from portfolio_pulse.schemas.reports import (
    AdviceTheme,
    AnalystReport,
    DataGap,
    ExpertAnalysis,
    KeywordCount,
    MentorActivity,
    MentorPatterns,
    MonthlyActivity,
    ObjectiveAnalysis,
    ObjectiveDiagnostic,
    RecurringTopic,
    RetrospectivePatterns,
    StatusCount,
    TopicAnalysis,
)
from pulse_agents.signals.lexicon import DEFAULT_LEXICON, Lexicon, find_terms
from pulse_agents.signals.text import (
    as_utc,
    format_number,
    month_key,
    parse_day,
    parse_timestamp,
    round_half_up,
    round_int,
    truncate,
)

_NUMBER_CHARS = set("0123456789.-")

TOP_KEYWORD_LIMIT = 10
RECURRING_TOPIC_LIMIT = 5
RECURRING_EXAMPLE_LIMIT = 5
RECENT_SESSION_WINDOW = 3
RECENT_FOCUS_LIMIT = 5
ADVICE_THEME_LIMIT = 5
ADVICE_EXAMPLE_LIMIT = 2
DEMAND_AREA_LIMIT = 5


def generate_analyst_report(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> AnalystReport:
    """Run every analysis over ``packet`` and assemble the report."""
    objective_analysis = analyze_objectives(packet)
    topic_analysis = analyze_topics(packet, lexicon)
    mentor_patterns = analyze_mentor_patterns(packet, lexicon)
    return AnalystReport(
        objective_analysis=objective_analysis,
        topic_analysis=topic_analysis,
        mentor_patterns=mentor_patterns,
        expert_analysis=analyze_expert_requests(packet, lexicon),
        retrospective_patterns=analyze_retrospectives(packet, lexicon),
        data_gaps=assess_data_gaps(packet),
        activity_timeline=build_activity_timeline(packet),
        narrative_context=build_narrative_context(
            packet, objective_analysis, topic_analysis, mentor_patterns
        ),
    )


# ── Objectives ──────────────────────────────────────────────────


def _parse_rate(raw: float | str | None) -> Optional[float]:
    if raw is None or isinstance(raw, bool):
        return None
    if isinstance(raw, (int, float)):
        return float(raw) if math.isfinite(raw) else None
    digits = ""
    for char in raw.strip():
        if char in _NUMBER_CHARS:
            digits += char
        elif digits:
            break
    try:
        rate = float(digits)
    except ValueError:
        return None
    return rate if math.isfinite(rate) else None


def analyze_objectives(packet: CompanyDataPacket) -> ObjectiveAnalysis:
    """Join items to their latest measurement and check rates against data."""
    if not packet.objective_items:
        return ObjectiveAnalysis(overall_rate=packet.company.achievement_rate)

    latest: Dict[str, tuple[str, float]] = {}
    for value in packet.objective_values:
        if not value.objective_item_id or value.current_value is None:
            continue
        current = latest.get(value.objective_item_id)
        if current is None or value.period > current[0]:
            latest[value.objective_item_id] = (value.period, value.current_value)

    objectives: List[ObjectiveDiagnostic] = []
    for item in packet.objective_items:
        measurement = latest.get(item.record_id) if item.record_id else None
        objectives.append(
            ObjectiveDiagnostic(
                name=item.name,
                level=item.level,
                achievement_rate=_parse_rate(item.achievement_rate),
                achieved=bool(item.achieved),
                has_values=measurement is not None,
                latest_value=measurement[1] if measurement else None,
                target_value=item.target_value,
            )
        )

    rated = [o.achievement_rate for o in objectives if o.achievement_rate is not None]
    overall_rate = packet.company.achievement_rate
    if overall_rate is None and rated:
        overall_rate = round_half_up(sum(rated) / len(rated), 1)

    has_gap = bool(rated) and not any(o.has_values for o in objectives)
    gap_detail = (
        f"Achievement rates are entered for {len(rated)} item(s) but no measurements back them"
        if has_gap
        else None
    )
    return ObjectiveAnalysis(
        overall_rate=overall_rate,
        objectives=objectives,
        has_gap=has_gap,
        gap_detail=gap_detail,
    )


# ── Topics ──────────────────────────────────────────────────────


def _session_text(title: str, summary: str, follow_up: str) -> str:
    return " ".join(part for part in (title, summary, follow_up) if part)


def analyze_topics(packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON) -> TopicAnalysis:
    sessions = sorted(packet.sessions, key=lambda s: s.date, reverse=True)
    matches = [
        (session, find_terms(_session_text(session.title, session.summary, session.follow_up), lexicon.topic_terms))
        for session in sessions
    ]

    counts: Dict[str, int] = {}
    last_seen: Dict[str, str] = {}
    dates: Dict[str, List[str]] = {}
    for session, keywords in matches:
        for keyword in keywords:
            counts[keyword] = counts.get(keyword, 0) + 1
            last_seen.setdefault(keyword, session.date)
            if session.date:
                dates.setdefault(keyword, []).append(session.date)

    ranked = sorted(counts, key=lambda keyword: -counts[keyword])
    top_keywords = [
        KeywordCount(keyword=keyword, count=counts[keyword], last_seen=last_seen[keyword])
        for keyword in ranked[:TOP_KEYWORD_LIMIT]
    ]
    recurring_topics = [
        RecurringTopic(
            topic=keyword,
            sessions=dates.get(keyword, [])[:RECURRING_EXAMPLE_LIMIT],
            frequency=counts[keyword],
        )
        for keyword in ranked
        if counts[keyword] >= 2
    ][:RECURRING_TOPIC_LIMIT]

    recent_focus: List[str] = []
    for _, keywords in matches[:RECENT_SESSION_WINDOW]:
        for keyword in keywords:
            if keyword not in recent_focus:
                recent_focus.append(keyword)
    return TopicAnalysis(
        top_keywords=top_keywords,
        recurring_topics=recurring_topics,
        recent_focus=recent_focus[:RECENT_FOCUS_LIMIT],
    )


# ── Mentors ─────────────────────────────────────────────────────


def analyze_mentor_patterns(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> MentorPatterns:
    sessions = sorted(packet.sessions, key=lambda s: s.date, reverse=True)

    session_counts: Dict[str, int] = {}
    last_dates: Dict[str, str] = {}
    for session in sessions:
        for name in dict.fromkeys(n.strip() for n in session.mentor_names):
            if not name:
                continue
            session_counts[name] = session_counts.get(name, 0) + 1
            last_dates.setdefault(name, session.date)
    mentors = [
        MentorActivity(name=name, session_count=count, last_date=last_dates[name])
        for name, count in sorted(session_counts.items(), key=lambda item: -item[1])
    ]

    theme_counts: Dict[str, int] = {}
    examples: Dict[str, List[str]] = {}
    for session in sessions:
        if not session.follow_up:
            continue
        for theme in find_terms(session.follow_up, lexicon.advice_themes):
            theme_counts[theme] = theme_counts.get(theme, 0) + 1
            excerpts = examples.setdefault(theme, [])
            if len(excerpts) < ADVICE_EXAMPLE_LIMIT:
                excerpts.append(truncate(session.follow_up, 80))
    advice_themes = [
        AdviceTheme(theme=theme, count=count, examples=examples[theme])
        for theme, count in sorted(theme_counts.items(), key=lambda item: -item[1])
        if count >= 2
    ][:ADVICE_THEME_LIMIT]

    follow_up_rate = 0.0
    if packet.sessions:
        followed = sum(1 for s in packet.sessions if len(s.follow_up.strip()) > 10)
        follow_up_rate = round_half_up(followed / len(packet.sessions), 2)

    return MentorPatterns(
        mentors=mentors, advice_themes=advice_themes, follow_up_rate=follow_up_rate
    )


# ── Expert requests ─────────────────────────────────────────────


def analyze_expert_requests(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> ExpertAnalysis:
    """Status histogram, demand areas and an approximate resolution time.

    Requests carry no completion timestamp, so ``avg_resolution_days`` is the
    time from request to ``collected_at`` for completed requests.
    """
    requests = packet.expert_requests
    if not requests:
        return ExpertAnalysis()

    statuses = Counter(request.status.strip() or "unspecified" for request in requests)
    by_status = [
        StatusCount(status=status, count=count)
        for status, count in sorted(statuses.items(), key=lambda item: -item[1])
    ]

    now = as_utc(packet.collected_at)
    durations: List[float] = []
    for request in requests:
        if not lexicon.is_completed(request.status):
            continue
        requested_at = parse_timestamp(request.requested_at)
        if requested_at is not None:
            durations.append((now - requested_at) / timedelta(days=1))
    avg_resolution_days = (
        round_int(sum(durations) / len(durations)) if durations else None
    )

    areas: List[str] = []
    for request in requests:
        candidates = [truncate(request.desired_expertise.strip(), 30)] if request.desired_expertise.strip() else []
        candidates.extend(tag for tag in request.support_types if tag)
        for area in candidates:
            if area not in areas:
                areas.append(area)

    pending_urgent = sum(
        1
        for request in requests
        if lexicon.is_urgent(request.urgency) and lexicon.is_pending(request.status)
    )
    return ExpertAnalysis(
        total=len(requests),
        by_status=by_status,
        avg_resolution_days=avg_resolution_days,
        demand_areas=areas[:DEMAND_AREA_LIMIT],
        pending_urgent=pending_urgent,
    )


# ── Retrospectives ──────────────────────────────────────────────


def analyze_retrospectives(
    packet: CompanyDataPacket, lexicon: Lexicon = DEFAULT_LEXICON
) -> RetrospectivePatterns:
    reviews = sorted(packet.retrospectives, key=lambda r: r.review_date, reverse=True)
    if not reviews:
        return RetrospectivePatterns()

    recent = reviews[:RECENT_SESSION_WINDOW]
    problem_counts: Dict[str, int] = {}
    for review in reviews:
        for term in find_terms(review.problem, lexicon.problem_terms):
            problem_counts[term] = problem_counts.get(term, 0) + 1

    return RetrospectivePatterns(
        total_reviews=len(reviews),
        recent_keep=[r.keep for r in recent if r.keep],
        recent_problem=[r.problem for r in recent if r.problem],
        recent_try=[r.try_ for r in recent if r.try_],
        recurring_problems=[
            term
            for term, count in sorted(problem_counts.items(), key=lambda item: -item[1])
            if count >= 2
        ],
    )


# ── Data gaps ───────────────────────────────────────────────────


def assess_data_gaps(packet: CompanyDataPacket) -> List[DataGap]:
    gaps: List[DataGap] = []
    sessions = packet.sessions
    if not sessions:
        gaps.append(DataGap(area="sessions", detail="No engagement recorded", severity="high"))
    else:
        thin = sum(1 for s in sessions if len(s.summary.strip()) < 10)
        if thin > len(sessions) * 0.5:
            gaps.append(
                DataGap(
                    area="session summaries",
                    detail=f"{thin}/{len(sessions)} sessions have no usable summary",
                    severity="medium",
                )
            )

    if not packet.retrospectives:
        gaps.append(
            DataGap(area="retrospectives", detail="No retrospectives recorded", severity="medium")
        )

    if not packet.objective_items:
        gaps.append(DataGap(area="objectives", detail="No objectives defined", severity="medium"))
    elif not packet.objective_values:
        gaps.append(
            DataGap(
                area="objective measurements",
                detail="Objectives exist but no measurements are recorded",
                severity="medium",
            )
        )

    if not packet.expert_requests:
        gaps.append(
            DataGap(area="expert requests", detail="No expert requests recorded", severity="low")
        )

    company = packet.company
    if not company.description.strip() and not company.product_intro.strip():
        gaps.append(
            DataGap(
                area="company profile",
                detail="No company description or product introduction",
                severity="low",
            )
        )
    return gaps


# ── Timeline ────────────────────────────────────────────────────


def build_activity_timeline(packet: CompanyDataPacket) -> List[MonthlyActivity]:
    buckets: Dict[str, Dict[str, int]] = {}

    def bump(raw: str, field: str) -> None:
        day = parse_day(raw)
        if day is None:
            return
        bucket = buckets.setdefault(
            month_key(day),
            {"session_count": 0, "retrospective_count": 0, "expert_request_count": 0},
        )
        bucket[field] += 1

    for session in packet.sessions:
        bump(session.date, "session_count")
    for review in packet.retrospectives:
        bump(review.review_date, "retrospective_count")
    for request in packet.expert_requests:
        bump(request.requested_at, "expert_request_count")

    return [MonthlyActivity(month=month, **buckets[month]) for month in sorted(buckets)]


# ── Narrative ───────────────────────────────────────────────────


def build_narrative_context(
    packet: CompanyDataPacket,
    objectives: ObjectiveAnalysis,
    topics: TopicAnalysis,
    mentors: MentorPatterns,
) -> str:
    """Fixed-template text block handed to the narrative assembler."""
    company = packet.company
    batch = " ".join(part for part in (company.batch_label, company.batch_name) if part)
    lines = [f"[Company] {company.name}" + (f" ({batch})" if batch else "")]

    about = company.description.strip() or company.product_intro.strip()
    if about:
        lines.append(f"About: {truncate(about, 100)}")

    lines.append(
        f"[Data] sessions {len(packet.sessions)}, "
        f"retrospectives {len(packet.retrospectives)}, "
        f"objectives {len(packet.objective_items)}, "
        f"expert requests {len(packet.expert_requests)}"
    )

    if objectives.overall_rate is not None:
        lines.append(f"[Objectives] overall achievement {format_number(objectives.overall_rate)}%")
        if objectives.has_gap:
            lines.append(f"  ! {objectives.gap_detail}")

    if topics.top_keywords:
        lines.append(
            "[Top topics] "
            + ", ".join(f"{k.keyword}({k.count})" for k in topics.top_keywords[:5])
        )
    if topics.recent_focus:
        lines.append("[Recent focus] " + ", ".join(topics.recent_focus))

    if mentors.mentors:
        lines.append(
            "[Mentors] "
            + ", ".join(f"{m.name}({m.session_count})" for m in mentors.mentors[:3])
        )
    lines.append(f"[Follow-up rate] {round_int(mentors.follow_up_rate * 100)}%")

    if mentors.advice_themes:
        lines.append(
            "[Recurring advice] "
            + ", ".join(f"{t.theme}({t.count})" for t in mentors.advice_themes)
        )
    return "\n".join(lines)


__all__ = [
    "analyze_expert_requests",
    "analyze_mentor_patterns",
    "analyze_objectives",
    "analyze_retrospectives",
    "analyze_topics",
    "assess_data_gaps",
    "build_activity_timeline",
    "build_narrative_context",
    "generate_analyst_report",
]
