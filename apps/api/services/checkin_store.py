"""
Check-in Store

Repository over the check-in tables. The jobs never touch the Session
directly; everything they need from the database goes through here, so
the duplicate guards live in one place:

- instance creation relies on uq_safety_checkin_timing_date; a unique
  violation means another run created the row first and is reported as
  "already exists", not as an error.
- reminders and escalations are compare-and-set updates on the check-in
  row. Only the run whose UPDATE matches the observed state proceeds.

Each mutating method commits its own unit of work.
"""

from __future__ import annotations

from datetime import date, datetime, time
from typing import Iterable, List, Optional, Sequence

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from models import (
    ALERT_PRIORITY_HIGH,
    ALERT_STATUS_PENDING,
    ALERT_TYPE_NO_RESPONSE,
    CheckinStatus,
    NotificationLog,
    SafetyAlert,
    SafetyCheckin,
    SafetySnoozeLog,
    SafetyTiming,
    UserDevice,
    UserProfile,
)
import logging

logger = logging.getLogger(__name__)

_END_OF_MINUTE = (59, 999999)


class CheckinStore:
    def __init__(self, db: Session):
        self.db = db

    def rollback(self) -> None:
        self.db.rollback()

    # --- timings -----------------------------------------------------------

    def due_timings(self, minute: time) -> List[SafetyTiming]:
        """Active timings whose time-of-day falls inside ``minute``."""
        start = minute.replace(second=0, microsecond=0)
        end = start.replace(second=_END_OF_MINUTE[0], microsecond=_END_OF_MINUTE[1])
        stmt = (
            select(SafetyTiming)
            .where(
                SafetyTiming.is_active.is_(True),
                SafetyTiming.time_of_day >= start,
                SafetyTiming.time_of_day <= end,
            )
            .order_by(SafetyTiming.id)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(stmt))

    # --- check-in instances -----------------------------------------------

    def get_checkin(self, checkin_id: int) -> Optional[SafetyCheckin]:
        return self.db.get(SafetyCheckin, checkin_id)

    def checkin_exists(self, timing_id: int, checkin_date: date) -> bool:
        stmt = (
            select(SafetyCheckin.id)
            .where(
                SafetyCheckin.timing_id == timing_id,
                SafetyCheckin.checkin_date == checkin_date,
            )
            .limit(1)
        )
        return self.db.execute(stmt).first() is not None

    def create_checkin(
        self,
        timing: SafetyTiming,
        checkin_date: date,
        now: datetime,
    ) -> Optional[SafetyCheckin]:
        """
        Insert today's instance for ``timing``.

        Returns None when an instance for (timing, date) already exists,
        including when a concurrent run inserted it after our existence check.
        """
        timing_id = timing.id
        checkin = SafetyCheckin(
            timing_id=timing_id,
            user_id=timing.user_id,
            org_id=timing.org_id,
            checkin_date=checkin_date,
            scheduled_time=timing.time_of_day,
            status=CheckinStatus.PENDING.value,
            snooze_count=0,
            created_at=now,
        )
        try:
            with self.db.begin_nested():
                self.db.add(checkin)
        except IntegrityError:
            if self.checkin_exists(timing_id, checkin_date):
                self.db.commit()
                logger.info(f"Check-in for timing {timing_id} on {checkin_date} created by another run")
                return None
            raise

        self.db.commit()
        return checkin

    def snoozed_due(self, cutoff: datetime) -> List[SafetyCheckin]:
        """Snoozed instances whose snooze timer started at or before ``cutoff``."""
        stmt = (
            select(SafetyCheckin)
            .where(
                SafetyCheckin.status == CheckinStatus.SNOOZED.value,
                or_(
                    SafetyCheckin.last_snooze_at.is_(None),
                    SafetyCheckin.last_snooze_at <= cutoff,
                ),
            )
            .order_by(SafetyCheckin.id)
            .execution_options(populate_existing=True)
        )
        return list(self.db.scalars(stmt))

    def claim_reminder(
        self,
        checkin_id: int,
        observed_count: int,
        now: datetime,
        refresh_timer: bool = True,
    ) -> bool:
        """
        Advance snooze_count from ``observed_count`` by one.

        False when the row is no longer snoozed at that count (another run
        already sent this reminder, or the user responded).
        """
        values = {"snooze_count": observed_count + 1, "updated_at": now}
        if refresh_timer:
            values["last_snooze_at"] = now

        result = self.db.execute(
            update(SafetyCheckin)
            .where(
                SafetyCheckin.id == checkin_id,
                SafetyCheckin.status == CheckinStatus.SNOOZED.value,
                SafetyCheckin.snooze_count == observed_count,
            )
            .values(**values)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    def escalate(
        self,
        checkin_id: int,
        user_id: int,
        org_id: int,
        threshold: int,
        now: datetime,
    ) -> Optional[SafetyAlert]:
        """
        Flip a snoozed instance to escalated_no_response and create its alert.

        Both writes commit together. Returns None if the instance already left
        the snoozed state, so a second run never creates a second alert.
        """
        result = self.db.execute(
            update(SafetyCheckin)
            .where(
                SafetyCheckin.id == checkin_id,
                SafetyCheckin.status == CheckinStatus.SNOOZED.value,
                SafetyCheckin.snooze_count >= threshold,
            )
            .values(
                status=CheckinStatus.ESCALATED_NO_RESPONSE.value,
                escalated_at=now,
                updated_at=now,
            )
        )
        if result.rowcount != 1:
            self.db.rollback()
            return None

        alert = SafetyAlert(
            checkin_id=checkin_id,
            user_id=user_id,
            org_id=org_id,
            alert_type=ALERT_TYPE_NO_RESPONSE,
            priority=ALERT_PRIORITY_HIGH,
            alert_status=ALERT_STATUS_PENDING,
            alert_sent_at=now,
            created_at=now,
        )
        self.db.add(alert)
        try:
            self.db.flush()
        except IntegrityError:
            self.db.rollback()
            logger.info(f"Alert for check-in {checkin_id} already exists")
            return None

        self.db.commit()
        return alert

    def transition(
        self,
        checkin_id: int,
        from_statuses: Sequence[str],
        to_status: str,
        now: datetime,
        **values,
    ) -> bool:
        """Compare-and-set the status of one instance. True when this call won."""
        result = self.db.execute(
            update(SafetyCheckin)
            .where(
                SafetyCheckin.id == checkin_id,
                SafetyCheckin.status.in_(list(from_statuses)),
            )
            .values(status=to_status, updated_at=now, **values)
        )
        if result.rowcount != 1:
            self.db.rollback()
            return False
        self.db.commit()
        return True

    # --- append-only logs --------------------------------------------------

    def record_snooze_log(
        self,
        checkin_id: int,
        snooze_number: int,
        sent_at: datetime,
        delivered: bool,
    ) -> SafetySnoozeLog:
        entry = SafetySnoozeLog(
            checkin_id=checkin_id,
            snooze_number=snooze_number,
            sent_at=sent_at,
            notification_delivered=bool(delivered),
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    def record_notification(
        self,
        checkin_id: Optional[int],
        user_id: int,
        notification_type: str,
        delivery_status: str,
        sent_at: datetime,
        error_message: Optional[str] = None,
    ) -> NotificationLog:
        entry = NotificationLog(
            checkin_id=checkin_id,
            user_id=user_id,
            notification_type=notification_type,
            delivery_status=delivery_status,
            error_message=error_message,
            sent_at=sent_at,
        )
        self.db.add(entry)
        self.db.commit()
        return entry

    # --- users and devices -------------------------------------------------

    def active_device_tokens(self, user_id: int) -> List[str]:
        stmt = (
            select(UserDevice.device_token)
            .where(UserDevice.user_id == user_id, UserDevice.is_active.is_(True))
            .order_by(UserDevice.id)
        )
        return [token for token in self.db.scalars(stmt) if token]

    def deactivate_devices(self, tokens: Iterable[str], now: datetime) -> int:
        tokens = [t for t in tokens if t]
        if not tokens:
            return 0
        result = self.db.execute(
            update(UserDevice)
            .where(UserDevice.device_token.in_(tokens), UserDevice.is_active.is_(True))
            .values(is_active=False, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        return result.rowcount or 0

    def user_display_name(self, user_id: int) -> Optional[str]:
        stmt = select(UserProfile.full_name).where(UserProfile.user_id == user_id)
        name = self.db.execute(stmt).scalar_one_or_none()
        if name is None:
            return None
        name = name.strip()
        return name or None
