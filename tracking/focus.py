"""Focus percentage integration."""

import logging
from dataclasses import dataclass
from typing import Optional

import config
from camera.presence import PresenceSnapshot

logger = logging.getLogger(__name__)

STATE_FOCUSED = "focused"
STATE_DEFOCUSED = "defocused"
STATE_NO_FACE = "no_face"


@dataclass(frozen=True)
class FocusRates:
    """Gain/loss rates in percentage points per second, plus the confidence gate."""
    
    focus_gain_per_sec: float = config.FOCUS_GAIN_PER_SEC
    defocus_loss_per_sec: float = config.DEFOCUS_LOSS_PER_SEC
    no_face_loss_per_sec: float = config.NO_FACE_LOSS_PER_SEC
    min_focus_confidence: float = config.MIN_FOCUS_CONFIDENCE


def _clamp(value: float) -> float:
    return min(100.0, max(0.0, value))


class FocusIntegrator:
    """
    Leaky integrator turning presence snapshots into a 0-100 focus score.
    
    Focused time raises the score at focus_gain_per_sec, looking away (or
    looking with low confidence) lowers it at defocus_loss_per_sec and a
    missing face lowers it at no_face_loss_per_sec. The value is clamped
    after every update and nothing but the current value is remembered.
    """
    
    def __init__(self, rates: Optional[FocusRates] = None, initial: float = config.INITIAL_FOCUS_PERCENTAGE):
        self.rates = rates or FocusRates()
        self.focus_percentage = _clamp(initial)
    
    def classify(self, snapshot: PresenceSnapshot) -> str:
        """
        Decide which integration branch a snapshot falls in.
        
        Args:
            snapshot: Latest presence snapshot
        
        Returns:
            STATE_FOCUSED, STATE_DEFOCUSED or STATE_NO_FACE
        """
        if not snapshot.face_detected:
            return STATE_NO_FACE
        if snapshot.is_looking_at_screen and snapshot.confidence >= self.rates.min_focus_confidence:
            return STATE_FOCUSED
        return STATE_DEFOCUSED
    
    def update(self, snapshot: PresenceSnapshot, dt: float) -> float:
        """
        Apply dt seconds of gain or loss for the given snapshot.
        
        Args:
            snapshot: Latest presence snapshot
            dt: Elapsed seconds since the previous update
        
        Returns:
            New focus percentage
        """
        if dt <= 0:
            return self.focus_percentage
        
        state = self.classify(snapshot)
        if state == STATE_NO_FACE:
            delta = -self.rates.no_face_loss_per_sec * dt
        elif state == STATE_FOCUSED:
            delta = self.rates.focus_gain_per_sec * dt
        else:
            delta = -self.rates.defocus_loss_per_sec * dt
        
        self.focus_percentage = _clamp(self.focus_percentage + delta)
        logger.debug(f"Focus update: {state} dt={dt:.2f}s -> {self.focus_percentage:.1f}%")
        return self.focus_percentage
    
    def reset(self, value: float = config.INITIAL_FOCUS_PERCENTAGE) -> None:
        self.focus_percentage = _clamp(value)
