"""
Snooze Monitor

Runs once per minute over check-ins in the "snoozed" state whose snooze
timer has elapsed (SNOOZE_INTERVAL_MINUTES). For each one:

    snooze_count <  threshold -> send a reminder, log it, count + 1
    snooze_count >= threshold -> escalated_no_response + one admin alert

Both branches claim their transition with a compare-and-set update before
anything is sent, so two overlapping runs cannot send the same reminder
twice or create two alerts. An escalated check-in is never selected again.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Optional

from models import DeliveryStatus, NotificationType, SafetyCheckin
from services.checkin_clock import CheckinClock, ClockReading
from services.checkin_dispatcher import deliver_safely
from services.checkin_notifications import (
    UNKNOWN_USER_NAME,
    admin_topic,
    no_response_admin_message,
    snooze_reminder_message,
)
from services.checkin_store import CheckinStore
from services.job_report import ItemOutcome, ItemResult, JobReport
import logging

logger = logging.getLogger(__name__)

JOB_NAME = "snooze_monitor"
DEFAULT_ESCALATION_THRESHOLD = 3
DEFAULT_SNOOZE_INTERVAL_MINUTES = 5


class SnoozeMonitor:
    def __init__(
        self,
        store: CheckinStore,
        gateway,
        clock: CheckinClock,
        escalation_threshold: int = DEFAULT_ESCALATION_THRESHOLD,
        snooze_interval_minutes: int = DEFAULT_SNOOZE_INTERVAL_MINUTES,
        refresh_snooze_at_on_reminder: bool = True,
        time_budget_s: Optional[float] = None,
    ):
        if escalation_threshold < 1:
            raise ValueError("escalation_threshold must be >= 1")
        self.store = store
        self.gateway = gateway
        self.clock = clock
        self.escalation_threshold = escalation_threshold
        self.snooze_interval = timedelta(minutes=snooze_interval_minutes)
        self.refresh_snooze_at_on_reminder = refresh_snooze_at_on_reminder
        self.time_budget_s = time_budget_s

    def run(self, now: Optional[datetime] = None) -> JobReport:
        reading = self.clock.read(now)
        report = JobReport(job=JOB_NAME, started_at=reading.instant)

        cutoff = reading.instant - self.snooze_interval
        due = self.store.snoozed_due(cutoff)
        logger.info(f"Snooze monitor: found {len(due)} check-in(s) to process")

        deadline = None
        if self.time_budget_s is not None:
            deadline = time.monotonic() + self.time_budget_s

        for checkin in due:
            checkin_id = checkin.id
            if deadline is not None and time.monotonic() >= deadline:
                report.add(ItemResult(checkin_id, ItemOutcome.DEFERRED, "run budget exhausted"))
                continue
            report.add(self._process(checkin, reading))

        counts = report.counts()
        logger.info(
            f"Snooze monitor finished: reminded={counts['reminded']} escalated={counts['escalated']} "
            f"skipped={counts['skipped']} failed={counts['failed']} deferred={counts['deferred']}"
        )
        return report

    def _process(self, checkin: SafetyCheckin, reading: ClockReading) -> ItemResult:
        checkin_id = checkin.id
        try:
            snooze_count = checkin.snooze_count or 0
            if snooze_count >= self.escalation_threshold:
                return self._escalate(checkin, reading)
            return self._remind(checkin, snooze_count, reading)
        except Exception as e:
            self.store.rollback()
            logger.error(f"Error processing check-in {checkin_id}: {type(e).__name__}: {e}", exc_info=True)
            return ItemResult(checkin_id, ItemOutcome.FAILED, f"{type(e).__name__}: {e}")

    def _remind(self, checkin: SafetyCheckin, snooze_count: int, reading: ClockReading) -> ItemResult:
        checkin_id = checkin.id
        user_id = checkin.user_id
        snooze_number = snooze_count + 1
        remaining = self.escalation_threshold - snooze_count

        claimed = self.store.claim_reminder(
            checkin_id,
            snooze_count,
            reading.instant,
            refresh_timer=self.refresh_snooze_at_on_reminder,
        )
        if not claimed:
            logger.info(f"Reminder {snooze_number} for check-in {checkin_id} already handled elsewhere")
            return ItemResult(checkin_id, ItemOutcome.SKIPPED, "state changed before reminder")

        # The reminder is counted from here on; nothing below may raise.
        logger.info(f"Sending snooze reminder {snooze_number} for check-in {checkin_id}")
        message = snooze_reminder_message(checkin_id, snooze_number, remaining)
        result = deliver_safely(
            self.gateway.send_to_user, user_id, message.title, message.body, message.data
        )

        log_error = self._record_snooze_log(checkin_id, snooze_number, reading.instant, result.success)
        self._deactivate_unregistered(result.unregistered, reading.instant)

        if log_error is not None:
            return ItemResult(
                checkin_id,
                ItemOutcome.FAILED,
                f"reminder {snooze_number} sent but not logged: {log_error}",
            )
        if not result.success:
            logger.warning(f"Snooze reminder {snooze_number} for check-in {checkin_id} not delivered: {result.error}")
            return ItemResult(checkin_id, ItemOutcome.REMINDED, f"reminder {snooze_number} not delivered")
        return ItemResult(checkin_id, ItemOutcome.REMINDED, f"reminder {snooze_number}")

    def _record_snooze_log(
        self,
        checkin_id: int,
        snooze_number: int,
        sent_at: datetime,
        delivered: bool,
    ) -> Optional[str]:
        """Write the SnoozeLog row, retrying once. Returns the error text if both attempts fail."""
        error = None
        for attempt in (1, 2):
            try:
                self.store.record_snooze_log(checkin_id, snooze_number, sent_at, delivered)
                return None
            except Exception as e:
                self.store.rollback()
                error = f"{type(e).__name__}: {e}"
                logger.warning(
                    f"SnoozeLog {snooze_number} for check-in {checkin_id} failed (attempt {attempt}): {error}"
                )
        logger.error(
            f"SnoozeLog {snooze_number} for check-in {checkin_id} lost after retry "
            f"(delivered={delivered}): {error}"
        )
        return error

    def _deactivate_unregistered(self, tokens, now: datetime) -> None:
        if not tokens:
            return
        try:
            self.store.deactivate_devices(tokens, now)
        except Exception as e:
            self.store.rollback()
            logger.warning(f"Could not deactivate {len(tokens)} unregistered device(s): {e}")

    def _display_name(self, user_id: int) -> str:
        try:
            return self.store.user_display_name(user_id) or UNKNOWN_USER_NAME
        except Exception as e:
            self.store.rollback()
            logger.warning(f"Display name lookup failed for user {user_id}: {e}")
            return UNKNOWN_USER_NAME

    def _escalate(self, checkin: SafetyCheckin, reading: ClockReading) -> ItemResult:
        checkin_id = checkin.id
        user_id = checkin.user_id
        org_id = checkin.org_id

        # Resolved before the alert commits; after that the admin push must go out.
        user_name = self._display_name(user_id)

        logger.info(f"Max snoozes reached, escalating check-in {checkin_id}")
        alert = self.store.escalate(
            checkin_id, user_id, org_id, self.escalation_threshold, reading.instant
        )
        if alert is None:
            logger.info(f"Check-in {checkin_id} no longer snoozed, escalation skipped")
            return ItemResult(checkin_id, ItemOutcome.SKIPPED, "state changed before escalation")
        alert_id = alert.id

        message = no_response_admin_message(checkin_id, alert_id, user_name, self.escalation_threshold)
        result = deliver_safely(
            self.gateway.send_to_topic, admin_topic(org_id), message.title, message.body, message.data
        )

        try:
            self.store.record_notification(
                checkin_id=checkin_id,
                user_id=user_id,
                notification_type=NotificationType.ADMIN_NO_RESPONSE.value,
                delivery_status=(DeliveryStatus.SENT if result.success else DeliveryStatus.FAILED).value,
                sent_at=reading.instant,
                error_message=None if result.success else result.error,
            )
        except Exception as e:
            self.store.rollback()
            logger.error(
                f"Could not log admin alert {alert_id} for check-in {checkin_id} "
                f"(delivered={result.success}): {e}",
                exc_info=True,
            )

        if result.success:
            logger.info(f"Admin alert {alert_id} sent for check-in {checkin_id}")
        else:
            logger.warning(f"Admin alert {alert_id} for check-in {checkin_id} not delivered: {result.error}")
        return ItemResult(checkin_id, ItemOutcome.ESCALATED, f"alert {alert_id}")
