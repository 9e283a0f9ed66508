import logging
import os
from typing import Dict, Tuple

logger = logging.getLogger(__name__)

# --- Logging ---
LOG_LEVEL = os.environ.get("SCHEDULER_LOG_LEVEL", "INFO").upper()
LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s | %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# --- File Paths ---
DATA_DIR = os.environ.get("DATA_DIR", "public/data")
REPORT_FILE = os.path.join(DATA_DIR, "scheduling_report.json")

# --- Timezones ---
# Used only when a caller supplies no timezone at all; never assumed for civil input
# that arrives with an explicit source timezone.
DEFAULT_TIMEZONE = os.environ.get("SCHEDULER_DEFAULT_TIMEZONE", "Africa/Cairo")

# --- Scheduling rules ---
CLASS_DURATION_BOUNDS: Tuple[int, int] = (15, 180)
WINDOW_DURATION_BOUNDS: Tuple[int, int] = (15, 720)
GENERATION_PERIODS: Tuple[int, ...] = (1, 2, 3, 6)
DEFAULT_GENERATION_PERIOD_MONTHS = 2

GUARD_HOURS = int(os.environ.get("SCHEDULER_GUARD_HOURS", "3"))
SUGGESTION_LIMIT = int(os.environ.get("SCHEDULER_SUGGESTION_LIMIT", "8"))
SUGGESTION_WEEKS_PER_WINDOW = int(os.environ.get("SCHEDULER_SUGGESTION_WEEKS", "3"))
SUGGESTION_STEP_MINUTES = int(os.environ.get("SCHEDULER_SUGGESTION_STEP_MINUTES", "30"))
DST_WARNING_DAYS = int(os.environ.get("SCHEDULER_DST_WARNING_DAYS", "7"))

# --- Availability API ---
AVAILABILITY_API_BASE = os.environ.get("AVAILABILITY_API_BASE", "http://localhost:5000/api/availability")
AVAILABILITY_API_TOKEN = os.environ.get("AVAILABILITY_API_TOKEN")
REQUEST_TIMEOUT = int(os.environ.get("SCHEDULER_REQUEST_TIMEOUT", "10"))

COMMON_HEADERS: Dict[str, str] = {
    "Accept": "application/json, text/plain, */*",
    "User-Agent": os.environ.get("SCHEDULER_USER_AGENT", "tutoring-scheduler/1.0"),
}

if not AVAILABILITY_API_TOKEN:
    logger.debug("AVAILABILITY_API_TOKEN not set. Availability requests will be sent unauthenticated.")
