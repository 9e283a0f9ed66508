import logging
from typing import Dict, Optional

import requests

from tutoring_scheduler import config
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import AvailabilityProfile
from tutoring_scheduler.payloads import parse_availability_payload

logger = logging.getLogger(__name__)


def build_url(teacher_id: str) -> str:
    """Constructs the availability API URL for a teacher."""
    url = f"{config.AVAILABILITY_API_BASE.rstrip('/')}/slots/{teacher_id}"
    logger.debug(f"Built URL: {url}")
    return url


def _headers() -> Dict[str, str]:
    headers = dict(config.COMMON_HEADERS)
    if config.AVAILABILITY_API_TOKEN:
        headers["Authorization"] = f"Bearer {config.AVAILABILITY_API_TOKEN}"
    return headers


def fetch_availability(teacher_id: str) -> Optional[Dict]:
    """Fetches a teacher's availability snapshot. Returns None on any failure."""
    full_url = build_url(teacher_id)
    logger.info(f"Fetching availability for teacher {teacher_id} from {full_url}")

    try:
        response = requests.get(full_url, headers=_headers(), timeout=config.REQUEST_TIMEOUT)
        logger.debug(f"Response status: {response.status_code}")
        response.raise_for_status()
        data: Dict = response.json()
    except Exception as e:
        logger.error(f"Error fetching availability: {e}")
        return None

    # Some deployments wrap the profile in {"success": true, "data": {...}}
    if isinstance(data, dict) and isinstance(data.get("data"), dict):
        return data["data"]
    return data


def get_availability_profile(
    teacher_id: str, default_timezone: str = config.DEFAULT_TIMEZONE
) -> Optional[AvailabilityProfile]:
    """Fetches and parses a teacher's profile. None means the lookup failed."""
    data = fetch_availability(teacher_id)
    if not data:
        return None

    try:
        return parse_availability_payload(data, default_timezone)
    except SchedulingValidationError as e:
        logger.error(f"Availability for teacher {teacher_id} is malformed: {e}")
        return None
