from __future__ import annotations

import argparse
import json
import os
import sys


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Run one pass of a safety check-in job (for cron: * * * * *)."
    )
    parser.add_argument(
        "job",
        choices=["evaluate", "snooze"],
        help="evaluate: create today's check-ins due this minute; snooze: reminders and escalation",
    )
    parser.add_argument("--quiet", action="store_true", help="Do not print the JSON report")
    args = parser.parse_args(argv)

    # NOTE: Intended to run inside the API runtime; make `core`, `services`
    # and `models` importable when invoked as a plain script.
    sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

    from core.exceptions import JobFatalError
    from core.logging import setup_logging
    from services.checkin_jobs import JOBS

    setup_logging()

    try:
        report = JOBS[args.job]()
    except JobFatalError as e:
        print(json.dumps({"status": "error", "job": args.job, "message": str(e)}))
        return 1

    if not args.quiet:
        print(json.dumps(report.to_dict(), default=str))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
