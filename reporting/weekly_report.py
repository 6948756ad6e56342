"""Weekly progress report built from a user's sessions."""

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Iterable, List, Optional

from tracking.session import FocusSession

logger = logging.getLogger(__name__)

TREND_IMPROVING = "improving"
TREND_DECLINING = "declining"
TREND_STABLE = "stable"


def _average_focus(sessions: List[FocusSession]) -> float:
    if not sessions:
        return 0.0
    return sum(s.focus_percentage for s in sessions) / len(sessions)


def _between(sessions: Iterable[FocusSession], start: datetime, end: datetime) -> List[FocusSession]:
    return [s for s in sessions if start <= s.start_time < end]


def calculate_focus_change(sessions: List[FocusSession], week_start: datetime, now: datetime) -> int:
    """Whole-point change in average focus against the previous 7 days."""
    previous = _between(sessions, week_start - timedelta(days=7), week_start)
    current = [s for s in sessions if week_start <= s.start_time <= now]
    return int(round(_average_focus(current) - _average_focus(previous)))


def calculate_productivity_trend(sessions: List[FocusSession], now: datetime) -> str:
    """
    Compare average focus of the most recent week with the oldest week
    that has sessions, over the last four weeks.
    """
    weeks: Dict[int, List[FocusSession]] = {}
    for session in sessions:
        age = now - session.start_time
        if age < timedelta(0) or age > timedelta(days=28):
            continue
        weeks.setdefault(int(age / timedelta(days=7)), []).append(session)
    
    if len(weeks) < 2:
        return TREND_STABLE
    
    newest = _average_focus(weeks[min(weeks)])
    oldest = _average_focus(weeks[max(weeks)])
    
    if newest > oldest:
        return TREND_IMPROVING
    if newest < oldest:
        return TREND_DECLINING
    return TREND_STABLE


def get_best_day(sessions: List[FocusSession]) -> str:
    """Weekday name with the highest average focus, empty if none scored."""
    day_stats: Dict[str, List[float]] = {}
    for session in sessions:
        day_stats.setdefault(session.start_time.strftime("%A"), []).append(session.focus_percentage)
    
    best_day = ""
    best_avg = 0.0
    for day, values in day_stats.items():
        avg = sum(values) / len(values)
        if avg > best_avg:
            best_avg = avg
            best_day = day
    
    return best_day


def get_most_productive_time(sessions: List[FocusSession]) -> str:
    """Hour range with the highest average focus, e.g. "9:00 - 10:00"."""
    hour_stats: Dict[int, List[float]] = {}
    for session in sessions:
        hour_stats.setdefault(session.start_time.hour, []).append(session.focus_percentage)
    
    if not hour_stats:
        return ""
    
    best_hour = max(sorted(hour_stats), key=lambda h: sum(hour_stats[h]) / len(hour_stats[h]))
    return f"{best_hour}:00 - {best_hour + 1}:00"


def get_recommendations(sessions: List[FocusSession]) -> List[str]:
    """
    Rule-based suggestions for the coming week.
    
    Args:
        sessions: Sessions from the report week
    
    Returns:
        List of recommendations, never empty
    """
    recommendations = []
    count = len(sessions)
    
    if _average_focus(sessions) < 70:
        recommendations.append("Consider shorter focus sessions to maintain concentration")
    
    completion_rate = (sum(1 for s in sessions if s.is_completed) / count * 100) if count else 0
    if completion_rate < 50:
        recommendations.append("Try to complete more sessions to build consistency")
    
    avg_distractions = (sum(s.distraction_count for s in sessions) / count) if count else 0
    if avg_distractions > 3:
        recommendations.append("Minimize distractions by turning off notifications during focus time")
    
    if not recommendations:
        recommendations.append("Great work! Keep maintaining your excellent focus habits")
    
    return recommendations


def build_weekly_report(sessions: Iterable[FocusSession], now: Optional[datetime] = None) -> Dict[str, Any]:
    """
    Build the weekly report for the 7 days ending at `now`.
    
    Args:
        sessions: All of the user's sessions (older ones feed the comparisons)
        now: Report time (defaults to datetime.now())
    
    Returns:
        Dictionary with period, summary, improvements, highlights and recommendations
    """
    now = now or datetime.now()
    start = now - timedelta(days=7)
    
    all_sessions = list(sessions)
    week = [s for s in all_sessions if start <= s.start_time <= now]
    count = len(week)
    
    report = {
        "period": {
            "start": start.isoformat(),
            "end": now.isoformat(),
        },
        "summary": {
            "total_sessions": count,
            "total_minutes": int(round(sum(s.duration for s in week) / 60.0)),
            "average_focus": int(round(_average_focus(week))),
            "completion_rate": int(round(sum(1 for s in week if s.is_completed) / count * 100)) if count else 0,
        },
        "improvements": {
            "focus_change": calculate_focus_change(all_sessions, start, now),
            "productivity_trend": calculate_productivity_trend(all_sessions, now),
        },
        "highlights": {
            "best_day": get_best_day(week),
            "longest_session": max((s.duration for s in week), default=0.0) / 60.0,
            "most_productive_time": get_most_productive_time(week),
        },
        "recommendations": get_recommendations(week),
    }
    
    logger.info(f"Weekly report built from {count} sessions")
    return report
