"""
Safety Check-in Tasks

Celery Beat runs both tasks every minute:

- `run_timing_evaluator` creates today's check-ins for timings due now
  and sends the initial notification.
- `run_snooze_monitor` sends reminders for snoozed check-ins and
  escalates the ones that used up their snooze budget.

Design:
    - No retries: the next minute's run is the retry, and the existence
      checks / conditional updates make re-running safe.
    - Soft time limit below one minute; an interrupted run leaves the
      remaining items for the next invocation.
    - Return value is the JSON job report ("status": "error" on a fatal run).
"""

from datetime import datetime, timezone
from typing import Dict

from celery import Task
from celery.exceptions import SoftTimeLimitExceeded

from tasks import celery_app
from core.exceptions import JobFatalError
import logging

logger = logging.getLogger(__name__)


def _run(job_name: str) -> Dict:
    from services.checkin_jobs import JOBS

    try:
        report = JOBS[job_name]()
        return report.to_dict()
    except JobFatalError as e:
        logger.error(f"Check-in job '{job_name}' aborted: {e}")
        return {"status": "error", "job": job_name, "message": str(e)}
    except SoftTimeLimitExceeded:
        logger.warning(f"Check-in job '{job_name}' hit its time limit; remaining items deferred")
        return {
            "status": "timeout",
            "job": job_name,
            "message": "soft time limit exceeded",
            "at": datetime.now(timezone.utc).isoformat(),
        }
    except Exception as e:
        logger.error(f"Check-in job '{job_name}' failed: {e}", exc_info=True)
        return {"status": "error", "job": job_name, "message": str(e)}


@celery_app.task(
    name="tasks.run_timing_evaluator",
    bind=True,
    max_retries=0,
    soft_time_limit=50,
    time_limit=58,
)
def run_timing_evaluator_task(self: Task) -> Dict:
    """Create and notify today's check-ins for timings due this minute."""
    return _run("evaluate")


@celery_app.task(
    name="tasks.run_snooze_monitor",
    bind=True,
    max_retries=0,
    soft_time_limit=50,
    time_limit=58,
)
def run_snooze_monitor_task(self: Task) -> Dict:
    """Send due snooze reminders and escalate exhausted check-ins."""
    return _run("snooze")
