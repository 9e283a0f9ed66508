import argparse
import json
import logging
import sys
from typing import Any, List, Optional

from tutoring_scheduler import availability_client, config, report
from tutoring_scheduler.clock import Clock, FixedClock, SystemClock
from tutoring_scheduler.converter import convert
from tutoring_scheduler.dst import check_dst_warning, get_dst_info
from tutoring_scheduler.engine import SchedulingAttempt, attempt_from_payload
from tutoring_scheduler.errors import SchedulingValidationError
from tutoring_scheduler.models import PartyTimezones

# --- Logging Setup ---

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool):
    """Sends log records to stderr. HTTP client chatter is only shown when verbose."""
    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(logging.Formatter(fmt=config.LOG_FORMAT, datefmt=config.LOG_DATE_FORMAT))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.DEBUG if verbose else config.LOG_LEVEL)
    logging.getLogger("urllib3").setLevel(logging.DEBUG if verbose else logging.WARNING)


def parse_arguments(argv: Optional[List[str]] = None):
    """Parses command line arguments."""
    parser = argparse.ArgumentParser(description="Check tutoring class schedules against teacher availability.")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging.")
    parser.add_argument("--now", type=str, help="Evaluate as of this ISO instant instead of the current time.")
    subparsers = parser.add_subparsers(dest="command", required=True)

    check_parser = subparsers.add_parser("check", help="Check a recurring pattern against availability and bookings.")
    check_parser.add_argument("--pattern", required=True, help="JSON file with recurrenceDetails.")
    source = check_parser.add_mutually_exclusive_group()
    source.add_argument("--availability", help="JSON file with the teacher's availability.")
    source.add_argument("--teacher-id", help="Fetch the teacher's availability from the availability API.")
    check_parser.add_argument("--bookings", help="JSON file with existing classes and unavailable periods.")
    check_parser.add_argument("--teacher-tz", help="Teacher timezone for display and DST checks.")
    check_parser.add_argument("--guardian-tz", help="Guardian timezone for display and DST checks.")
    check_parser.add_argument("--admin-tz", help="Admin timezone for display and DST checks.")
    check_parser.add_argument("--output", help=f"Report file. Defaults to {config.REPORT_FILE}.")

    dst_parser = subparsers.add_parser("dst", help="Show DST transitions for a timezone.")
    dst_parser.add_argument("--timezone", default=config.DEFAULT_TIMEZONE, help="IANA timezone name.")
    dst_parser.add_argument("--year", type=int, help="Year to inspect. Defaults to the current year.")

    return parser.parse_args(argv)


def load_json(path: str) -> Any:
    """Loads a JSON input file, exiting on failure."""
    try:
        with open(path, "r") as f:
            return json.load(f)
    except (json.JSONDecodeError, IOError) as e:
        logger.error(f"Failed to load {path}: {e}")
        sys.exit(1)


def build_clock(now: Optional[str]) -> Clock:
    if not now:
        return SystemClock()
    result = convert(now, "UTC", "UTC")
    if result.instant is None or result.degraded:
        logger.error(f"Error: --now must be an ISO date/time, got '{now}'")
        sys.exit(1)
    return FixedClock(result.instant)


def build_parties(args) -> Optional[PartyTimezones]:
    if not (args.teacher_tz or args.guardian_tz or args.admin_tz):
        return None
    return PartyTimezones(
        teacher=args.teacher_tz or config.DEFAULT_TIMEZONE,
        guardian=args.guardian_tz or config.DEFAULT_TIMEZONE,
        admin=args.admin_tz or config.DEFAULT_TIMEZONE,
    )


def run_check(args, clock: Clock) -> SchedulingAttempt:
    """Loads the inputs, runs one scheduling attempt, prints and saves the report."""
    pattern_payload = load_json(args.pattern)
    bookings_payload = load_json(args.bookings) if args.bookings else []

    availability_payload = None
    if args.availability:
        availability_payload = load_json(args.availability)
    elif args.teacher_id:
        availability_payload = availability_client.fetch_availability(args.teacher_id)
        if availability_payload is None:
            logger.warning(f"Availability lookup for teacher {args.teacher_id} failed")

    attempt = attempt_from_payload(
        pattern_payload,
        availability_payload,
        bookings_payload,
        clock,
        parties=build_parties(args),
    )
    report.print_scheduling_report(attempt, display_timezone=args.teacher_tz)
    report.save_report([attempt], path=args.output)
    return attempt


def run_dst(args, clock: Clock):
    """Prints a timezone's DST transitions and any upcoming-change warning."""
    try:
        info = get_dst_info(args.timezone, clock, year=args.year)
        warning = check_dst_warning(args.timezone, clock)
    except SchedulingValidationError as e:
        logger.error(f"Error: {e}")
        sys.exit(1)

    report.print_dst_report(info)
    if warning.has_warning:
        print(f"[WARNING] {warning.message}")


def main(argv: Optional[List[str]] = None):
    args = parse_arguments(argv)
    setup_logging(args.verbose)
    clock = build_clock(args.now)

    if args.command == "check":
        run_check(args, clock)
    elif args.command == "dst":
        run_dst(args, clock)


if __name__ == "__main__":
    main()
