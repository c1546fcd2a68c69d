"""
User-driven check-in transitions.

    pending | snoozed --snooze-->  snoozed    (starts the snooze timer)
    pending | snoozed --respond--> completed

Both are compare-and-set on the current status. If the snooze monitor
escalated the check-in first, a late response is rejected: the alert has
already gone to the administrators and stays authoritative.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

from core.exceptions import InvalidTransitionError
from models import CheckinStatus, SafetyCheckin
from services.checkin_store import CheckinStore
import logging

logger = logging.getLogger(__name__)

_OPEN_STATUSES = (CheckinStatus.PENDING.value, CheckinStatus.SNOOZED.value)


def _load(store: CheckinStore, checkin_id: int) -> SafetyCheckin:
    checkin = store.get_checkin(checkin_id)
    if checkin is None:
        raise LookupError(f"Check-in {checkin_id} not found")
    return checkin


def snooze_checkin(db: Session, checkin_id: int, now: Optional[datetime] = None) -> SafetyCheckin:
    """Move a check-in into (or keep it in) the snoozed state and restart its timer."""
    now = now or datetime.now(timezone.utc)
    store = CheckinStore(db)
    checkin = _load(store, checkin_id)

    if not store.transition(
        checkin_id,
        _OPEN_STATUSES,
        CheckinStatus.SNOOZED.value,
        now,
        last_snooze_at=now,
    ):
        db.refresh(checkin)
        raise InvalidTransitionError(checkin_id, checkin.status, CheckinStatus.SNOOZED.value)

    logger.info(f"Check-in {checkin_id} snoozed by user {checkin.user_id}")
    db.refresh(checkin)
    return checkin


def respond_to_checkin(db: Session, checkin_id: int, now: Optional[datetime] = None) -> SafetyCheckin:
    """Mark a check-in as answered by the user."""
    now = now or datetime.now(timezone.utc)
    store = CheckinStore(db)
    checkin = _load(store, checkin_id)

    if not store.transition(
        checkin_id,
        _OPEN_STATUSES,
        CheckinStatus.COMPLETED.value,
        now,
        responded_at=now,
    ):
        db.refresh(checkin)
        raise InvalidTransitionError(checkin_id, checkin.status, CheckinStatus.COMPLETED.value)

    logger.info(f"Check-in {checkin_id} completed by user {checkin.user_id}")
    db.refresh(checkin)
    return checkin
