"""
Timing Evaluator

Runs once per minute. For every active timing scheduled at the current
minute it creates today's check-in (if none exists yet) and hands it to the
dispatcher for the initial notification.

Design:
    - One clock reading per run; date, minute and weekday all come from it.
    - A timing with unreadable active_days is skipped, not fatal.
    - Existence check first, then an insert guarded by the
      (timing_id, checkin_date) unique constraint. Losing the insert race
      to an overlapping run counts as "already exists".
    - One timing's failure does NOT block the others.
    - Timings left when the run budget is spent are deferred; the next
      run's existence check makes picking them up safe.
"""

from __future__ import annotations

import time
from datetime import datetime
from typing import Optional

from core.exceptions import ScheduleDataError
from models import SafetyTiming
from services.checkin_clock import CheckinClock, ClockReading, parse_active_days
from services.checkin_dispatcher import CheckinDispatcher
from services.checkin_store import CheckinStore
from services.job_report import ItemOutcome, ItemResult, JobReport
import logging

logger = logging.getLogger(__name__)

JOB_NAME = "timing_evaluator"


class TimingEvaluator:
    def __init__(
        self,
        store: CheckinStore,
        dispatcher: CheckinDispatcher,
        clock: CheckinClock,
        time_budget_s: Optional[float] = None,
    ):
        self.store = store
        self.dispatcher = dispatcher
        self.clock = clock
        self.time_budget_s = time_budget_s

    def run(self, now: Optional[datetime] = None) -> JobReport:
        reading = self.clock.read(now)
        report = JobReport(job=JOB_NAME, started_at=reading.instant)

        logger.info(
            f"Timing evaluator: {reading.minute.strftime('%H:%M')} {reading.weekday} "
            f"({reading.local_date})"
        )

        # Failure here is a store failure for the whole run; let it propagate.
        timings = self.store.due_timings(reading.minute)
        logger.info(f"Timing evaluator: {len(timings)} timing(s) due")

        deadline = None
        if self.time_budget_s is not None:
            deadline = time.monotonic() + self.time_budget_s

        for timing in timings:
            timing_id = timing.id
            if deadline is not None and time.monotonic() >= deadline:
                report.add(ItemResult(timing_id, ItemOutcome.DEFERRED, "run budget exhausted"))
                continue
            report.add(self._evaluate(timing, reading))

        counts = report.counts()
        logger.info(
            f"Timing evaluator finished: created={counts['created']} skipped={counts['skipped']} "
            f"failed={counts['failed']} deferred={counts['deferred']}"
        )
        return report

    def _evaluate(self, timing: SafetyTiming, reading: ClockReading) -> ItemResult:
        timing_id = timing.id
        try:
            try:
                active_days = parse_active_days(timing_id, timing.active_days)
            except ScheduleDataError as e:
                logger.warning(f"Skipping timing {timing_id}: {e.detail}")
                return ItemResult(timing_id, ItemOutcome.SKIPPED, f"malformed active_days: {e.detail}")

            if reading.weekday not in active_days:
                logger.debug(f"Timing {timing_id} not active on {reading.weekday}")
                return ItemResult(timing_id, ItemOutcome.SKIPPED, "not active today")

            if self.store.checkin_exists(timing_id, reading.local_date):
                return ItemResult(timing_id, ItemOutcome.SKIPPED, "check-in already exists")

            label = timing.label
            checkin = self.store.create_checkin(timing, reading.local_date, reading.instant)
            if checkin is None:
                return ItemResult(timing_id, ItemOutcome.SKIPPED, "check-in already exists")

            checkin_id = checkin.id
            logger.info(f"Created check-in {checkin_id} for user {checkin.user_id} (timing {timing_id})")

            self.dispatcher.dispatch(checkin, label, now=reading.instant)
            return ItemResult(timing_id, ItemOutcome.CREATED, f"check-in {checkin_id}")

        except Exception as e:
            self.store.rollback()
            logger.error(f"Error in timing {timing_id}: {type(e).__name__}: {e}", exc_info=True)
            return ItemResult(timing_id, ItemOutcome.FAILED, f"{type(e).__name__}: {e}")
