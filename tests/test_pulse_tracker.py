try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

from datetime import date, timedelta

from portfolio_pulse.schemas import (
    CompanyProfile,
    ExpertRequestRecord,
    ObjectiveItem,
    ObjectiveValue,
    RetrospectiveRecord,
    SessionRecord,
)
from pulse_agents.signals.pulse_tracker import (
    analyze_meeting_cadence,
    classify_trend,
    extract_milestones,
    generate_pulse_report,
)


def _sessions_from_intervals(start: date, intervals, **kwargs):
    days = [start]
    for gap in intervals:
        days.append(days[-1] + timedelta(days=gap))
    return tuple(SessionRecord(date=day.isoformat(), **kwargs) for day in days)


def _signals(report):
    return {signal.signal: signal.status for signal in report.health_signals}


def test_zero_sessions_default_to_irregular(make_packet):
    report = generate_pulse_report(make_packet())

    cadence = report.meeting_cadence
    assert cadence.trend == "irregular"
    assert cadence.density_score == 0
    assert cadence.total_sessions == 0
    assert cadence.density_label == "warning"
    assert report.milestones == []
    assert _signals(report) == {"Meeting density": "concern"}
    assert report.program_engagement.label == "not assessable"


def test_dispersion_overrides_ratio_trend():
    assert classify_trend([5, 5, 45, 45])[0] == "irregular"
    assert classify_trend([10, 10, 10, 50, 50, 50])[0] == "slowing"


def test_ratio_trends():
    assert classify_trend([14, 14, 7, 7])[0] == "accelerating"
    assert classify_trend([7, 7, 8, 7])[0] == "stable"
    trend, reason = classify_trend([7, 7])
    assert trend is None
    assert "insufficient history" in reason


def test_few_intervals_leave_trend_unclassified():
    cadence = analyze_meeting_cadence(_sessions_from_intervals(date(2025, 1, 1), [7, 7]))
    assert cadence.trend is None
    assert cadence.total_sessions == 3

    single = analyze_meeting_cadence(_sessions_from_intervals(date(2025, 1, 1), []))
    assert single.trend is None
    assert single.avg_interval_days == 0.0
    assert single.period_months == 1


def test_density_for_twelve_sessions_over_three_months():
    sessions = _sessions_from_intervals(date(2025, 1, 1), [8] * 10 + [10])

    cadence = analyze_meeting_cadence(sessions)

    assert cadence.total_sessions == 12
    assert cadence.period_months == 3
    assert cadence.density_score == 93
    assert cadence.density_label == "very active"
    assert cadence.avg_interval_days == 8.2
    assert cadence.recent_interval_days == 8.7


def test_session_types_counted_with_untyped_as_other():
    sessions = (
        SessionRecord(date="2025-01-01", session_types=("Mentoring",)),
        SessionRecord(date="2025-01-15", session_types=("Mentoring", "Checkup")),
        SessionRecord(date="2025-02-01"),
        SessionRecord(date="bad"),
    )

    cadence = analyze_meeting_cadence(sessions)

    assert [(t.type, t.count, t.last_date) for t in cadence.by_type] == [
        ("Mentoring", 2, "2025-01-15"),
        ("Checkup", 1, "2025-01-15"),
        ("other", 1, "2025-02-01"),
    ]


def test_milestones_dedupe_sort_and_cap(make_packet):
    sessions = tuple(
        SessionRecord(
            date=(date(2025, 1, 1) + timedelta(days=day)).isoformat(),
            title=f"Session {day}",
            summary=f"Weekly check. MRR reached {day}k this week!",
        )
        for day in range(20)
    )
    duplicate = SessionRecord(date="2025-01-20", summary="We launched the new app.")
    reviews = (RetrospectiveRecord(review_date="2025-01-20", keep="Pivot to enterprise customers"),)
    requests = (
        ExpertRequestRecord(status="Completed", requested_at="2025-01-19T10:00:00Z", one_liner="Secured a government grant"),
        ExpertRequestRecord(status="In review", requested_at="2025-01-18T10:00:00Z", one_liner="Won an award"),
    )

    milestones = extract_milestones(
        make_packet(sessions=sessions + (duplicate,), retrospectives=reviews, expert_requests=requests)
    )

    assert len(milestones) == 15
    assert [m.date for m in milestones] == sorted((m.date for m in milestones), reverse=True)
    first_day = [m for m in milestones if m.date == "2025-01-20"]
    assert {(m.category, m.source) for m in first_day} == {
        ("Achievement", "session"),
        ("Inflection", "retrospective"),
    }
    achievement = next(m for m in first_day if m.category == "Achievement")
    assert achievement.title == "MRR reached 19k this week"
    assert achievement.detail == "Session 19"
    external = next(m for m in milestones if m.category == "External")
    assert external.source == "expert_request"
    assert external.detail == "Secured a government grant"
    assert all(m.title != "Won an award" for m in milestones)


def test_milestone_title_is_truncated(make_packet):
    text = "Closed a partnership " + "with a very large distributor " * 4
    packet = make_packet(sessions=(SessionRecord(date="2025-01-01", summary=text),))

    milestones = extract_milestones(packet)

    assert milestones[0].category == "Decision"
    assert len(milestones[0].title) == 60
    assert milestones[0].title.endswith("...")


def test_health_signals(make_packet):
    # collected_at is 2025-06-30
    sessions = _sessions_from_intervals(date(2025, 3, 1), [14, 14, 30, 30])
    packet = make_packet(
        sessions=sessions,
        retrospectives=(RetrospectiveRecord(review_date="2025-01-15"),),
        expert_requests=(
            ExpertRequestRecord(status="Matching"),
            ExpertRequestRecord(status="Declined"),
        ),
        objective_items=(
            ObjectiveItem(name="a", achieved=True),
            ObjectiveItem(name="b", achieved=True),
            ObjectiveItem(name="c", achieved=False),
        ),
    )

    report = generate_pulse_report(packet)
    signals = _signals(report)

    assert report.meeting_cadence.trend == "slowing"
    assert signals["Meeting cadence slowing"] == "warning"
    assert signals["Meeting gap"] == "concern"
    assert signals["Retrospective cadence"] == "warning"
    assert signals["Expert resource utilization"] == "good"
    assert signals["Objective achievement"] == "good"
    assert signals["Meeting density"] == "concern"


def test_recent_activity_signals(make_packet):
    packet = make_packet(
        sessions=(SessionRecord(date="2025-06-10"),),
        retrospectives=(RetrospectiveRecord(review_date="2025-05-01"),),
        expert_requests=(ExpertRequestRecord(status="done"),),
        objective_items=(ObjectiveItem(name="a"), ObjectiveItem(name="b")),
    )

    signals = _signals(generate_pulse_report(packet))

    assert signals["Meeting interval"] == "warning"
    assert signals["Retrospective cadence"] == "good"
    assert "Expert resource utilization" not in signals
    assert signals["Objective achievement"] == "concern"


def test_program_engagement_redistributes_weights(make_packet):
    sessions = (
        SessionRecord(date="2025-06-01", session_types=("Mentoring",)),
        SessionRecord(date="2025-05-01", session_types=("checkup",)),
        SessionRecord(date="2025-01-01", session_types=("Mentoring",)),
    )
    packet = make_packet(
        sessions=sessions,
        objective_items=(ObjectiveItem(name="a"),),
        objective_values=(ObjectiveValue(objective_item_id="x", current_value=1.0),),
    )

    engagement = generate_pulse_report(packet).program_engagement

    areas = {area.area: area for area in engagement.breakdown}
    assert areas["mentoring"].score == 50
    assert areas["mentoring"].weight == 0.67
    assert areas["objectives"].score == 100
    assert areas["objectives"].weight == 0.33
    assert areas["expert deployment"].weight == 0.0
    assert engagement.overall_score == 67
    assert engagement.label == "moderate"


def test_engagement_health_signals(make_packet):
    active = make_packet(
        sessions=(
            SessionRecord(date="2025-06-01", session_types=("Mentoring",)),
            SessionRecord(date="2025-05-01", session_types=("checkup",)),
        ),
        objective_items=(ObjectiveItem(name="a"),),
        objective_values=(ObjectiveValue(objective_item_id="x", current_value=1.0),),
    )
    dormant = make_packet(
        sessions=(SessionRecord(date="2025-01-01", session_types=("Mentoring",)),),
        retrospectives=(RetrospectiveRecord(review_date="2025-01-15"),),
    )

    active_report = generate_pulse_report(active)
    dormant_signals = _signals(generate_pulse_report(dormant))

    engagement = next(s for s in active_report.health_signals if s.signal == "Program engagement")
    assert engagement.status == "good"
    assert engagement.detail == "moderate (67): mentoring, objectives"
    assert not any(s.signal.startswith("Unused") for s in active_report.health_signals)
    assert dormant_signals["Program engagement"] == "concern"
    assert dormant_signals["Unused mentoring"] == "concern"
    assert dormant_signals["Unused retrospectives"] == "concern"


def test_qualitative_assessment_and_summary(make_packet):
    packet = make_packet(
        company=CompanyProfile(company_id="company-1", name="Acme", dedicated_mentor="Kim, Park"),
        sessions=(
            SessionRecord(date="2025-04-20", mentor_names=("Kim Minsu",)),
            SessionRecord(date="2025-05-18", mentor_names=("Lee",)),
            SessionRecord(date="2025-06-15", mentor_names=("Park Jisoo",)),
        ),
    )

    report = generate_pulse_report(packet)
    qualitative = report.qualitative_assessment

    regularity = qualitative.mentoring_regularity
    assert [(m.month, m.count) for m in regularity.recent_month_breakdown] == [
        ("2025-06", 1),
        ("2025-05", 1),
        ("2025-04", 1),
    ]
    assert regularity.meets_monthly_target is True

    mentor = qualitative.dedicated_mentor_engagement
    assert mentor.has_dedicated_mentor is True
    assert mentor.total_meetings == 2
    assert mentor.avg_interval_days == 56
    assert mentor.is_regular is False
    assert mentor.last_meeting_date == "2025-06-15"

    assert qualitative.expert_request_activity.total_requests == 0
    assert report.summary == "mentoring on track · dedicated mentor irregular · no expert requests"
    assert qualitative.overall_narrative.endswith(".")


def test_pulse_report_is_idempotent(make_packet):
    packet = make_packet(
        sessions=_sessions_from_intervals(date(2025, 4, 1), [7, 9, 12, 20], summary="Launched beta."),
        retrospectives=(RetrospectiveRecord(review_date="2025-06-01", keep="Revenue up"),),
    )

    assert generate_pulse_report(packet).model_dump() == generate_pulse_report(packet).model_dump()
