"""Configuration settings for the FocusFlow tracker."""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Base directory
BASE_DIR = Path(__file__).parent

# OpenAI Configuration
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_MODEL = "gpt-4o-mini"
OPENAI_MAX_RETRIES = 3
OPENAI_RETRY_DELAY = 1  # seconds

# Gemini Configuration (fallback insight provider)
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-1.5-flash")

# Presence debounce and fps measurement
PRESENCE_DEBOUNCE_SECONDS = 0.2  # Missing-face frames shorter than this are ignored
FPS_WINDOW_SECONDS = 0.5

# Focus integration defaults (per second, percentage points)
FOCUS_GAIN_PER_SEC = float(os.getenv("FOCUS_GAIN_PER_SEC", "1.2"))
DEFOCUS_LOSS_PER_SEC = float(os.getenv("DEFOCUS_LOSS_PER_SEC", "4.0"))
NO_FACE_LOSS_PER_SEC = float(os.getenv("NO_FACE_LOSS_PER_SEC", "6.0"))
MIN_FOCUS_CONFIDENCE = float(os.getenv("MIN_FOCUS_CONFIDENCE", "35"))
INITIAL_FOCUS_PERCENTAGE = 100.0

# Session timing
TICK_INTERVAL_SECONDS = 1.0
AUTOSAVE_INTERVAL_SECONDS = 10.0
DEFAULT_FOCUS_MINUTES = 25

# Final write policy for stop()
STOP_WRITE_RETRIES = 3
STOP_RETRY_DELAY = 0.5  # seconds, doubled after each attempt

# Distraction events
DISTRACTION_TYPES = ("away", "phone", "browser", "manual", "other")
DISTRACTION_SEVERITY_MIN = 1
DISTRACTION_SEVERITY_MAX = 10
AUTO_DISTRACTION_TYPE = "away"
AUTO_DISTRACTION_SEVERITY = 1

# Session types
SESSION_TYPE_FOCUS = "focus"

# Camera Configuration
CAMERA_INDEX = int(os.getenv("CAMERA_INDEX", "0"))
FRAME_WIDTH = 640
FRAME_HEIGHT = 480
FACE_DETECTION_CONFIDENCE = 0.5

# Paths
DATA_DIR = Path(os.getenv("FOCUSFLOW_DATA_DIR", str(BASE_DIR / "data" / "sessions")))
REPORTS_DIR = Path(os.getenv("FOCUSFLOW_REPORTS_DIR", str(BASE_DIR / "reports")))
SETTINGS_FILE = DATA_DIR.parent / "settings.json"

# Analytics
BASELINE_SESSION_COUNT = 10  # Sessions used for the insight baseline

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
