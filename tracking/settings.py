"""User settings with defaults and range validation."""

import json
import logging
from dataclasses import dataclass, asdict, fields
from pathlib import Path
from typing import Any, Dict, Optional, Union

import config
from tracking.focus import FocusRates

logger = logging.getLogger(__name__)

# Allowed (min, max) for numeric settings
SETTING_RANGES = {
    "focus_duration": (5, 120),
    "short_break_duration": (1, 30),
    "long_break_duration": (5, 60),
    "distraction_threshold": (1, 10),
    "min_focus_confidence": (0, 100),
    "focus_gain_per_sec": (0, 20),
    "defocus_loss_per_sec": (0, 40),
    "no_face_loss_per_sec": (0, 40),
}

# Keys as stored by the web client
_CAMEL_CASE_KEYS = {
    "focusDuration": "focus_duration",
    "shortBreakDuration": "short_break_duration",
    "longBreakDuration": "long_break_duration",
    "cameraEnabled": "camera_enabled",
    "distractionThreshold": "distraction_threshold",
    "pauseOnDistraction": "pause_on_distraction",
    "minFocusConfidence": "min_focus_confidence",
    "focusGainPerSec": "focus_gain_per_sec",
    "defocusLossPerSec": "defocus_loss_per_sec",
    "noFaceLossPerSec": "no_face_loss_per_sec",
    "mirrorVideo": "mirror_video",
}

_INT_FIELDS = ("focus_duration", "short_break_duration", "long_break_duration", "distraction_threshold")


@dataclass
class UserSettings:
    """Per-user tracking preferences. Durations are in minutes."""
    
    focus_duration: int = config.DEFAULT_FOCUS_MINUTES
    short_break_duration: int = 5
    long_break_duration: int = 15
    camera_enabled: bool = False
    distraction_threshold: int = 3
    pause_on_distraction: bool = True
    min_focus_confidence: float = config.MIN_FOCUS_CONFIDENCE
    focus_gain_per_sec: float = config.FOCUS_GAIN_PER_SEC
    defocus_loss_per_sec: float = config.DEFOCUS_LOSS_PER_SEC
    no_face_loss_per_sec: float = config.NO_FACE_LOSS_PER_SEC
    mirror_video: bool = True
    
    def __post_init__(self):
        self.validate()
    
    def validate(self) -> None:
        """
        Check every numeric setting against its allowed range.
        
        Raises:
            ValueError: Naming the first field that is out of range
        """
        for name, (low, high) in SETTING_RANGES.items():
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)):
                raise ValueError(f"{name} must be a number, got {value!r}")
            if not low <= value <= high:
                raise ValueError(f"{name} must be between {low} and {high}, got {value}")
    
    def focus_rates(self) -> FocusRates:
        """Integration rates for FocusIntegrator."""
        return FocusRates(
            focus_gain_per_sec=float(self.focus_gain_per_sec),
            defocus_loss_per_sec=float(self.defocus_loss_per_sec),
            no_face_loss_per_sec=float(self.no_face_loss_per_sec),
            min_focus_confidence=float(self.min_focus_confidence),
        )
    
    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
    
    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserSettings":
        """
        Merge stored values over the defaults.
        
        Accepts snake_case or camelCase keys; unknown keys are ignored.
        
        Raises:
            ValueError: If a value is out of range
        """
        known = {f.name for f in fields(cls)}
        values: Dict[str, Any] = {}
        
        for key, value in (data or {}).items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                logger.debug(f"Ignoring unknown setting '{key}'")
                continue
            if name in _INT_FIELDS and isinstance(value, float) and value.is_integer():
                value = int(value)
            values[name] = value
        
        return cls(**values)


def load_settings(path: Optional[Union[str, Path]] = None) -> UserSettings:
    """
    Load settings from a JSON file, falling back to defaults.
    
    Args:
        path: Settings file (defaults to config.SETTINGS_FILE)
    
    Returns:
        UserSettings instance
    
    Raises:
        ValueError: If the file holds out-of-range values
    """
    path = Path(path or config.SETTINGS_FILE)
    
    if not path.exists():
        logger.info(f"No settings file at {path}, using defaults")
        return UserSettings()
    
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read settings from {path}: {e}. Using defaults.")
        return UserSettings()
    
    return UserSettings.from_dict(data)


def save_settings(settings: UserSettings, path: Optional[Union[str, Path]] = None) -> Path:
    """
    Write settings to a JSON file.
    
    Args:
        settings: Settings to persist
        path: Settings file (defaults to config.SETTINGS_FILE)
    
    Returns:
        Path that was written
    """
    path = Path(path or config.SETTINGS_FILE)
    path.parent.mkdir(parents=True, exist_ok=True)
    
    with open(path, "w", encoding="utf-8") as f:
        json.dump(settings.to_dict(), f, indent=2)
    
    logger.info(f"Settings saved to {path}")
    return path
