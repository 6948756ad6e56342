"""Tests for period analytics and timeline segments."""

from datetime import date, datetime

import pytest

from tracking.analytics import (
    compute_statistics,
    generate_insights,
    generate_summary_text,
    get_date_range,
    timeline_to_segments,
    today_focus,
)
from tracking.session import TimelineSample
from tests.conftest import make_session

NOW = datetime(2024, 1, 10, 15, 0)


def test_week_range_covers_seven_days():
    start, end = get_date_range("week", NOW)

    assert start == datetime(2024, 1, 4, 0, 0)
    assert end == datetime(2024, 1, 10, 23, 59, 59, 999999)


def test_all_range_starts_in_2020():
    start, _ = get_date_range("all", NOW)

    assert start == datetime(2020, 1, 1)


def test_unknown_period_raises():
    with pytest.raises(ValueError):
        get_date_range("decade", NOW)


def test_statistics_for_week():
    sessions = [
        make_session(datetime(2024, 1, 8, 9), duration=1500, focus=100, distractions=0, tags=["study"]),
        make_session(datetime(2024, 1, 9, 14), duration=600, focus=70, distractions=3, tags=["study", "work"]),
        make_session(datetime(2024, 1, 9, 14, 30), duration=300, focus=40, distractions=1, completed=False),
        make_session(datetime(2023, 12, 1, 9), duration=3000, focus=10),
    ]
    start, end = get_date_range("week", NOW)

    stats = compute_statistics(sessions, start, end, "week")

    assert stats["total_sessions"] == 3
    assert stats["completed_sessions"] == 2
    assert stats["total_minutes"] == 40
    assert stats["total_hours"] == 0.7
    assert stats["average_focus"] == 70
    assert stats["completion_rate"] == 67
    assert stats["perfect_sessions"] == 1
    assert stats["perfect_rate"] == 33
    assert stats["total_distractions"] == 4
    assert stats["avg_distraction_per_session"] == 1.3
    assert stats["best_session_minutes"] == 25
    assert stats["top_tags"] == [{"tag": "study", "count": 2}, {"tag": "work", "count": 1}]
    assert stats["hourly_distribution"] == [
        {"hour": "09:00", "sessions": 1, "distractions": 0},
        {"hour": "14:00", "sessions": 2, "distractions": 4},
    ]
    assert stats["peak_hours"][0]["hour"] == "14:00"


def test_daily_data_is_zero_padded():
    sessions = [make_session(datetime(2024, 1, 9, 10), duration=1200, focus=88, distractions=2)]
    start, end = get_date_range("week", NOW)

    daily = compute_statistics(sessions, start, end, "week")["daily_data"]

    assert len(daily) == 7
    assert daily[0]["date"] == "2024-01-04"
    assert daily[-1]["date"] == "2024-01-10"
    assert daily[5] == {
        "day": "Tue",
        "date": "2024-01-09",
        "focus": 88,
        "sessions": 1,
        "minutes": 20,
        "distractions": 2,
    }
    assert all(d["sessions"] == 0 and d["focus"] == 0 for i, d in enumerate(daily) if i != 5)


def test_empty_period():
    start, end = get_date_range("month", NOW)

    stats = compute_statistics([], start, end, "month")

    assert stats["total_sessions"] == 0
    assert stats["completion_rate"] == 0
    assert stats["avg_distraction_per_session"] == 0
    assert len(stats["daily_data"]) == 30
    assert stats["peak_hours"] == []


def test_today_focus_averages_todays_sessions():
    sessions = [
        make_session(datetime(2024, 1, 10, 9), focus=80),
        make_session(datetime(2024, 1, 10, 13), focus=61),
        make_session(datetime(2024, 1, 9, 9), focus=10),
    ]

    assert today_focus(sessions, date(2024, 1, 10)) == 71
    assert today_focus(sessions, date(2024, 1, 11)) == 0


def test_insights_rules():
    insights = generate_insights({
        "average_focus": 85,
        "streak": 4,
        "perfect_sessions": 1,
        "total_sessions": 5,
        "avg_distraction_per_session": 0.5,
    })

    assert len(insights) == 4


def test_insights_fallback_message():
    insights = generate_insights({"average_focus": 50, "total_sessions": 0})

    assert insights == ["Keep completing sessions to unlock more personalized insights."]


def test_timeline_segments_merge_consecutive_states():
    timeline = [
        {"t": 0, "focused": True},
        {"t": 1, "focused": True},
        {"t": 2, "focused": False},
        TimelineSample(t=3, focused=False),
        {"t": 4, "focused": True},
    ]

    segments, total = timeline_to_segments(timeline)

    assert total == 5
    assert segments == [
        {"time": 0, "duration": 2, "focused": True},
        {"time": 2, "duration": 2, "focused": False},
        {"time": 4, "duration": 1, "focused": True},
    ]


def test_timeline_segments_sort_and_ignore_bad_samples():
    segments, total = timeline_to_segments([{"t": 2, "focused": False}, {"focused": True}, {"t": 0, "focused": True}])

    assert [s["time"] for s in segments] == [0, 2]
    assert total == 3


def test_empty_timeline():
    assert timeline_to_segments([]) == ([], 0)


def test_summary_text_mentions_focus_and_goal():
    session = make_session(datetime(2024, 1, 10, 9), duration=1530, focus=84.2, distractions=2)
    session.goal = "Finish chapter 3"

    text = generate_summary_text(session)

    assert "Focus Score: 84.2%" in text
    assert "25m 30s" in text
    assert "Finish chapter 3" in text
    assert "Excellent focus" in text
