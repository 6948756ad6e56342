"""Analytics for computing period statistics from focus sessions."""

import math
from collections import Counter
from datetime import date, datetime, time, timedelta
from typing import Dict, List, Any, Iterable, Optional, Tuple

from tracking.session import FocusSession, TimelineSample

# Days covered by each analytics period, today included
PERIOD_DAYS = {
    "week": 7,
    "month": 30,
    "year": 365,
}
ALL_TIME_START = datetime(2020, 1, 1)


def _round(value: float) -> int:
    """Round half up, the way the dashboard displays numbers."""
    return int(math.floor(value + 0.5))


def _average(values: List[float]) -> float:
    return sum(values) / len(values) if values else 0.0


def get_date_range(period: str, now: Optional[datetime] = None) -> Tuple[datetime, datetime]:
    """
    Get the local start and end of an analytics period.
    
    Args:
        period: "week", "month", "year" or "all"
        now: Reference time (defaults to datetime.now())
    
    Returns:
        (start at 00:00 on the first day, end at 23:59:59.999999 today)
    
    Raises:
        ValueError: If the period is unknown
    """
    now = now or datetime.now()
    end = datetime.combine(now.date(), time.max)
    
    if period == "all":
        start = ALL_TIME_START
    elif period in PERIOD_DAYS:
        start_day = now.date() - timedelta(days=PERIOD_DAYS[period] - 1)
        start = datetime.combine(start_day, time.min)
    else:
        raise ValueError(f"Unknown period '{period}', expected week, month, year or all")
    
    return start, end


def filter_sessions(sessions: Iterable[FocusSession], start: datetime, end: datetime) -> List[FocusSession]:
    return [s for s in sessions if start <= s.start_time <= end]


def compute_statistics(
    sessions: Iterable[FocusSession],
    start: datetime,
    end: datetime,
    period: str = "week"
) -> Dict[str, Any]:
    """
    Compute period statistics from a user's sessions.
    
    Sessions outside [start, end] are ignored. Minutes are derived from
    each session's recorded duration; rates are whole percentages.
    
    Args:
        sessions: Sessions to analyse
        start: Period start (inclusive)
        end: Period end (inclusive)
        period: Period name, used to trim the daily series
    
    Returns:
        Dictionary with totals, rates, daily_data, hourly_distribution,
        peak_hours and top_tags
    """
    in_range = filter_sessions(sessions, start, end)
    total = len(in_range)
    
    completed = sum(1 for s in in_range if s.is_completed)
    total_minutes = sum(s.duration for s in in_range) / 60.0
    total_distractions = sum(s.distraction_count for s in in_range)
    perfect = sum(1 for s in in_range if s.focus_percentage >= 100)
    best_minutes = max((s.duration / 60.0 for s in in_range), default=0.0)
    
    hourly = _hourly_distribution(in_range)
    
    return {
        "total_sessions": total,
        "completed_sessions": completed,
        "total_minutes": _round(total_minutes),
        "total_hours": round(total_minutes / 60.0, 1),
        "average_focus": _round(_average([s.focus_percentage for s in in_range])),
        "completion_rate": _round(completed / total * 100) if total else 0,
        "perfect_sessions": perfect,
        "perfect_rate": _round(perfect / total * 100) if total else 0,
        "total_distractions": total_distractions,
        "avg_distraction_per_session": round(total_distractions / total, 1) if total else 0,
        "best_session_minutes": _round(best_minutes),
        "daily_data": _daily_data(in_range, start, end, period),
        "hourly_distribution": hourly,
        "peak_hours": sorted(hourly, key=lambda h: h["distractions"], reverse=True)[:3],
        "top_tags": _top_tags(in_range),
    }


def _daily_data(sessions: List[FocusSession], start: datetime, end: datetime, period: str) -> List[Dict[str, Any]]:
    """One entry per calendar day in the period, zero-filled for empty days."""
    by_day: Dict[date, List[FocusSession]] = {}
    for session in sessions:
        by_day.setdefault(session.start_time.date(), []).append(session)
    
    result = []
    cursor = start.date()
    while cursor <= end.date():
        day_sessions = by_day.get(cursor, [])
        result.append({
            "day": cursor.strftime("%a"),
            "date": cursor.isoformat(),
            "focus": _round(_average([s.focus_percentage for s in day_sessions])),
            "sessions": len(day_sessions),
            "minutes": _round(sum(s.duration for s in day_sessions) / 60.0),
            "distractions": sum(s.distraction_count for s in day_sessions),
        })
        cursor += timedelta(days=1)
    
    if period in PERIOD_DAYS:
        return result[-PERIOD_DAYS[period]:]
    return result


def _hourly_distribution(sessions: List[FocusSession]) -> List[Dict[str, Any]]:
    hours: Dict[str, Dict[str, Any]] = {}
    for session in sessions:
        key = session.start_time.strftime("%H:00")
        entry = hours.setdefault(key, {"hour": key, "sessions": 0, "distractions": 0})
        entry["sessions"] += 1
        entry["distractions"] += session.distraction_count
    
    return [hours[key] for key in sorted(hours)]


def _top_tags(sessions: List[FocusSession], limit: int = 10) -> List[Dict[str, Any]]:
    counts = Counter(tag for s in sessions for tag in s.tags)
    return [{"tag": tag, "count": count} for tag, count in counts.most_common(limit)]


def today_focus(sessions: Iterable[FocusSession], today: Optional[date] = None) -> int:
    """
    Average focus percentage of sessions started today.
    
    Args:
        sessions: Sessions to consider
        today: Reference day (defaults to date.today())
    
    Returns:
        Rounded average, 0 if there were no sessions today
    """
    today = today or date.today()
    values = [s.focus_percentage for s in sessions if s.start_time.date() == today]
    return _round(_average(values))


def generate_insights(analytics: Dict[str, Any]) -> List[str]:
    """
    Generate short rule-based observations for the dashboard.
    
    Args:
        analytics: Output of compute_statistics, optionally with a "streak" key
    
    Returns:
        List of messages, never empty
    """
    insights = []
    
    if analytics.get("average_focus", 0) > 80:
        insights.append("Great consistency. Your focus levels are strong.")
    if analytics.get("streak", 0) >= 3:
        insights.append("You are on a productivity streak. Keep the momentum.")
    if analytics.get("perfect_sessions", 0) > 0:
        insights.append("You logged distraction-free sessions. Strong control.")
    if analytics.get("total_sessions", 0) > 0 and analytics.get("avg_distraction_per_session", 0) <= 1:
        insights.append("Your setup is optimized for focus.")
    
    if not insights:
        insights.append("Keep completing sessions to unlock more personalized insights.")
    
    return insights


def timeline_to_segments(timeline: Iterable[Any]) -> Tuple[List[Dict[str, Any]], float]:
    """
    Convert per-tick focus samples into focused/unfocused segments.
    
    Samples are sorted by time; each lasts until the next sample (at least
    one second). Consecutive samples with the same focus state are merged
    into one segment to give a cleaner timeline.
    
    Args:
        timeline: TimelineSample objects or {"t", "focused"} dictionaries
    
    Returns:
        (segments as {"time", "duration", "focused"}, total seconds)
    """
    samples = []
    for item in timeline or []:
        if isinstance(item, TimelineSample):
            samples.append(item)
        elif isinstance(item, dict) and isinstance(item.get("t"), (int, float)):
            samples.append(TimelineSample.from_dict(item))
    
    if not samples:
        return [], 0
    
    samples.sort(key=lambda s: s.t)
    total = max(1.0, samples[-1].t + 1)
    
    segments: List[Dict[str, Any]] = []
    current = None
    
    for i, sample in enumerate(samples):
        end = samples[i + 1].t if i + 1 < len(samples) else total
        duration = max(1.0, end - sample.t)
        
        # Same state as the running segment: extend it
        if current and current["focused"] == sample.focused:
            current["duration"] += duration
        else:
            if current:
                segments.append(current)
            current = {"time": sample.t, "duration": duration, "focused": sample.focused}
    
    if current:
        segments.append(current)
    
    return segments, total


def generate_summary_text(session: FocusSession) -> str:
    """
    Generate a simple text summary of a session.
    
    Used in the CLI and as the body text of the PDF report when no
    coaching insight is available.
    
    Args:
        session: Completed session
    
    Returns:
        Human-readable summary string
    """
    total_secs = int(session.duration)
    hours = total_secs // 3600
    minutes = (total_secs % 3600) // 60
    seconds = total_secs % 60
    
    if hours > 0:
        duration_str = f"{hours}h {minutes}m"
    elif minutes > 0:
        duration_str = f"{minutes}m {seconds}s"
    else:
        duration_str = f"{seconds}s"
    
    target_min = session.target_duration / 60.0
    focus_pct = session.focus_percentage
    
    summary = f"""Session Summary:
Duration: {duration_str} of {target_min:.0f} minutes planned
Focus Score: {focus_pct:.1f}%
Distractions: {session.distraction_count}
"""
    
    if session.goal:
        summary += f"Goal: {session.goal}\n"
    
    if session.timeline:
        segments, _ = timeline_to_segments(session.timeline)
        focused_secs = sum(s["duration"] for s in segments if s["focused"])
        summary += f"Focused Time: {focused_secs / 60:.1f} minutes\n"
    
    summary += "\n"
    
    # Add simple observation
    if focus_pct >= 80:
        summary += "Excellent focus! You stayed on task for most of the session."
    elif focus_pct >= 60:
        summary += "Good session! You maintained decent focus with some breaks."
    elif focus_pct >= 40:
        summary += "Fair session. Consider minimizing distractions for better focus."
    else:
        summary += "This session had many interruptions. Try to find a quieter space."
    
    return summary
