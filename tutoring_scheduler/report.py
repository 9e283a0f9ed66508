import json
import logging
import os
from datetime import datetime, timezone
from typing import Dict, List, Optional

from tutoring_scheduler import config
from tutoring_scheduler.converter import format_in_timezone
from tutoring_scheduler.engine import AttemptState, SchedulingAttempt
from tutoring_scheduler.models import DSTInfo
from tutoring_scheduler.timeutils import format_duration

logger = logging.getLogger(__name__)

TIME_FORMAT = "%a %Y-%m-%d %H:%M"


def ensure_parent_dir(path: str) -> str:
    """Creates the directory `path` will be written into and returns it."""
    directory = os.path.dirname(path) or os.curdir
    os.makedirs(directory, exist_ok=True)
    return directory


def attempt_to_dict(attempt: SchedulingAttempt) -> Dict:
    """Serializes an attempt into the console's JSON shape."""
    return {
        "state": attempt.state.value,
        "history": [state.value for state in attempt.history],
        "message": attempt.message,
        "problems": list(attempt.problems),
        "occurrences": [
            {
                "startDateTime": o.start.isoformat(),
                "endDateTime": o.end.isoformat(),
                "durationMinutes": o.duration_minutes,
                "timezone": o.timezone,
                "wallClockShifted": o.wall_clock_shifted,
            }
            for o in attempt.occurrences
        ],
        "conflicts": [c.to_payload() for c in attempt.conflicts],
        "partyTimes": [p.model_dump(mode="json") for p in attempt.party_times],
        "dstWarnings": [w.model_dump(mode="json") for w in attempt.dst_warnings],
        "drift": [d.model_dump(mode="json") for d in attempt.drift],
    }


def print_scheduling_report(attempt: SchedulingAttempt, display_timezone: Optional[str] = None):
    """Prints the formatted scheduling report to stdout."""
    print(f"\n--- Scheduling Report ({attempt.state.value}) ---")

    if attempt.state == AttemptState.REJECTED_INVALID:
        for problem in attempt.problems:
            print(f"[INVALID]   {problem}")
        return

    for occurrence in attempt.occurrences:
        zone = display_timezone or occurrence.timezone
        prefix = "[SHIFTED]  " if occurrence.wall_clock_shifted else "[CLASS]    "
        print(f"{prefix} {format_in_timezone(occurrence.start, zone, TIME_FORMAT)} ({format_duration(occurrence.duration_minutes)})")

    for conflict in attempt.conflicts:
        print(f"\n[CONFLICT]   {conflict.reason}")
        for suggestion in conflict.alternatives:
            zone = display_timezone or suggestion.timezone
            marker = "" if suggestion.verified else " (unverified)"
            print(f"  - {format_in_timezone(suggestion.start, zone, TIME_FORMAT)}{marker}")

    for warning in attempt.dst_warnings:
        print(f"[DST]        {warning.timezone}: {warning.message}")

    if attempt.ok:
        print(f"Summary: All {len(attempt.occurrences)} classes fit the teacher's schedule.")
    else:
        print(f"Summary: {len(attempt.conflicts)} conflict(s) found.")


def print_dst_report(info: DSTInfo):
    """Prints the DST transitions of one timezone and year to stdout."""
    print(f"\n--- DST Transitions for {info.timezone} ({info.year}) ---")
    if not info.has_dst:
        print("Summary: No DST transitions this year.")
        return
    for transition in info.transitions:
        local = format_in_timezone(transition.instant, info.timezone, "%Y-%m-%d %H:%M %Z")
        print(f"[{transition.kind.value.upper()}] {local} ({transition.offset_after_minutes - transition.offset_before_minutes:+d} min)")


def save_report(attempts: List[SchedulingAttempt], path: Optional[str] = None):
    """Saves the scheduling report to a JSON file, by default under the data directory."""
    path = path or config.REPORT_FILE
    try:
        ensure_parent_dir(path)
        data = {
            "last_updated": datetime.now(timezone.utc).isoformat(),
            "attempts": [attempt_to_dict(a) for a in attempts],
        }
        with open(path, "w") as f:
            json.dump(data, f, indent=2)
        logger.info(f"Saved report to {path}")
    except OSError as e:
        logger.error(f"Failed to save report: {e}")
