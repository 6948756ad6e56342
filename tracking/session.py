"""Focus session data model."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import config


def _parse_time(value: Any) -> Optional[datetime]:
    if value is None or isinstance(value, datetime):
        return value
    return datetime.fromisoformat(str(value))


def _format_time(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def validate_distraction(distraction_type: str, severity: int) -> None:
    """
    Check a distraction type and severity.
    
    Args:
        distraction_type: One of config.DISTRACTION_TYPES
        severity: Integer between DISTRACTION_SEVERITY_MIN and DISTRACTION_SEVERITY_MAX
    
    Raises:
        ValueError: If either value is out of range
    """
    if distraction_type not in config.DISTRACTION_TYPES:
        raise ValueError(
            f"Invalid distraction type '{distraction_type}', "
            f"expected one of {', '.join(config.DISTRACTION_TYPES)}"
        )
    
    if isinstance(severity, bool) or not isinstance(severity, int):
        raise ValueError(f"Distraction severity must be an integer, got {severity!r}")
    
    if not config.DISTRACTION_SEVERITY_MIN <= severity <= config.DISTRACTION_SEVERITY_MAX:
        raise ValueError(
            f"Distraction severity must be between {config.DISTRACTION_SEVERITY_MIN} "
            f"and {config.DISTRACTION_SEVERITY_MAX}, got {severity}"
        )


@dataclass
class DistractionEvent:
    """A single user-reported or automatic distraction within a session."""
    
    type: str
    severity: int
    timestamp: datetime
    note: Optional[str] = None
    
    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "severity": self.severity,
            "note": self.note,
            "timestamp": _format_time(self.timestamp),
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DistractionEvent":
        return cls(
            type=data["type"],
            severity=int(data.get("severity", config.DISTRACTION_SEVERITY_MIN)),
            timestamp=_parse_time(data.get("timestamp")) or datetime.now(),
            note=data.get("note"),
        )


@dataclass
class TimelineSample:
    """Focus state sampled once per tick, t in seconds since session start."""
    
    t: float
    focused: bool
    confidence: Optional[int] = None
    
    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"t": self.t, "focused": self.focused}
        if self.confidence is not None:
            data["confidence"] = self.confidence
        return data
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TimelineSample":
        return cls(
            t=float(data.get("t", 0)),
            focused=bool(data.get("focused", False)),
            confidence=data.get("confidence"),
        )


@dataclass
class FocusSession:
    """
    One timed focus session.
    
    Durations are in seconds. focus_percentage stays within 0-100 and
    distraction_count only grows while the session is active.
    """
    
    user_id: str
    target_duration: int
    start_time: datetime
    id: Optional[str] = None
    duration: float = 0.0
    focus_percentage: float = config.INITIAL_FOCUS_PERCENTAGE
    distraction_count: int = 0
    is_completed: bool = False
    end_time: Optional[datetime] = None
    session_type: str = config.SESSION_TYPE_FOCUS
    camera_enabled: bool = False
    goal: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    distractions: List[DistractionEvent] = field(default_factory=list)
    timeline: List[TimelineSample] = field(default_factory=list)
    needs_reconciliation: bool = False
    
    @property
    def duration_minutes(self) -> float:
        return self.duration / 60.0
    
    def to_dict(self) -> Dict[str, Any]:
        """Serialize to a JSON-compatible dictionary."""
        return {
            "id": self.id,
            "user_id": self.user_id,
            "target_duration": self.target_duration,
            "duration": self.duration,
            "focus_percentage": self.focus_percentage,
            "distraction_count": self.distraction_count,
            "is_completed": self.is_completed,
            "start_time": _format_time(self.start_time),
            "end_time": _format_time(self.end_time),
            "session_type": self.session_type,
            "camera_enabled": self.camera_enabled,
            "goal": self.goal,
            "tags": list(self.tags),
            "distractions": [d.to_dict() for d in self.distractions],
            "timeline": [s.to_dict() for s in self.timeline],
            "needs_reconciliation": self.needs_reconciliation,
        }
    
    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FocusSession":
        """
        Build a session from a dictionary produced by to_dict().
        
        Missing optional fields fall back to their defaults.
        """
        return cls(
            id=data.get("id"),
            user_id=data.get("user_id", ""),
            target_duration=int(data.get("target_duration", 0)),
            duration=float(data.get("duration", 0.0)),
            focus_percentage=float(data.get("focus_percentage", config.INITIAL_FOCUS_PERCENTAGE)),
            distraction_count=int(data.get("distraction_count", 0)),
            is_completed=bool(data.get("is_completed", False)),
            start_time=_parse_time(data.get("start_time")) or datetime.now(),
            end_time=_parse_time(data.get("end_time")),
            session_type=data.get("session_type", config.SESSION_TYPE_FOCUS),
            camera_enabled=bool(data.get("camera_enabled", False)),
            goal=data.get("goal"),
            tags=list(data.get("tags") or []),
            distractions=[DistractionEvent.from_dict(d) for d in data.get("distractions") or []],
            timeline=[TimelineSample.from_dict(s) for s in data.get("timeline") or []],
            needs_reconciliation=bool(data.get("needs_reconciliation", False)),
        )
