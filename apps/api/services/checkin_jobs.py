"""
Check-in job entry points.

Wires the store, gateway and clock for one invocation of each job. Both the
Celery tasks and the cron script call these.

Fatal conditions (store unreachable, Firebase not configured, the batch
query itself failing) raise JobFatalError; per-item problems end up in the
returned JobReport.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from core.config import settings
from core.database import check_db_connection, get_db_sync
from core.exceptions import JobFatalError
from services.checkin_clock import CheckinClock
from services.checkin_dispatcher import CheckinDispatcher
from services.checkin_store import CheckinStore
from services.job_report import JobReport
from services.push_gateway import PushGateway, get_firebase_app
from services.snooze_monitor import SnoozeMonitor
from services.timing_evaluator import TimingEvaluator
import logging

logger = logging.getLogger(__name__)


def _build_gateway(store: CheckinStore) -> PushGateway:
    app = get_firebase_app() if settings.NOTIFICATIONS_ENABLED else None
    return PushGateway(token_lookup=store.active_device_tokens, app=app)


def _open_session(db: Optional[Session]) -> tuple:
    if db is not None:
        return db, False
    if not check_db_connection():
        raise JobFatalError("Database unavailable")
    return get_db_sync(), True


def run_timing_evaluator(
    db: Optional[Session] = None,
    gateway=None,
    now: Optional[datetime] = None,
) -> JobReport:
    db, owns_session = _open_session(db)
    try:
        store = CheckinStore(db)
        evaluator = TimingEvaluator(
            store=store,
            dispatcher=CheckinDispatcher(store, gateway or _build_gateway(store)),
            clock=CheckinClock(settings.CHECKIN_TIMEZONE),
            time_budget_s=settings.JOB_TIME_BUDGET_S,
        )
        try:
            return evaluator.run(now)
        except SQLAlchemyError as e:
            db.rollback()
            raise JobFatalError(f"Timing evaluator could not read timings: {e}") from e
    finally:
        if owns_session:
            db.close()


def run_snooze_monitor(
    db: Optional[Session] = None,
    gateway=None,
    now: Optional[datetime] = None,
) -> JobReport:
    db, owns_session = _open_session(db)
    try:
        store = CheckinStore(db)
        monitor = SnoozeMonitor(
            store=store,
            gateway=gateway or _build_gateway(store),
            clock=CheckinClock(settings.CHECKIN_TIMEZONE),
            escalation_threshold=settings.ESCALATION_THRESHOLD,
            snooze_interval_minutes=settings.SNOOZE_INTERVAL_MINUTES,
            refresh_snooze_at_on_reminder=settings.REFRESH_SNOOZE_AT_ON_REMINDER,
            time_budget_s=settings.JOB_TIME_BUDGET_S,
        )
        try:
            return monitor.run(now)
        except SQLAlchemyError as e:
            db.rollback()
            raise JobFatalError(f"Snooze monitor could not read check-ins: {e}") from e
    finally:
        if owns_session:
            db.close()


JOBS = {
    "evaluate": run_timing_evaluator,
    "snooze": run_snooze_monitor,
}
