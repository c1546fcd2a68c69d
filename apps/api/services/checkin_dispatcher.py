"""
Check-in Dispatcher

Sends the initial notification for a freshly created check-in and writes
exactly one NotificationLog row for the attempt. Delivery problems are an
outcome to record, not an error: dispatch() never raises.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from models import DeliveryStatus, NotificationType, SafetyCheckin
from services.checkin_notifications import initial_checkin_message
from services.checkin_store import CheckinStore
from services.push_gateway import DeliveryResult
import logging

logger = logging.getLogger(__name__)


def deliver_safely(send, *args, **kwargs) -> DeliveryResult:
    """Call a gateway method and fold any exception into a failed DeliveryResult."""
    try:
        result = send(*args, **kwargs)
    except Exception as e:
        logger.error(f"Notification gateway raised: {e}", exc_info=True)
        return DeliveryResult.failure(str(e))
    if result is None:
        return DeliveryResult.failure("gateway returned no result")
    return result


class CheckinDispatcher:
    def __init__(self, store: CheckinStore, gateway):
        self.store = store
        self.gateway = gateway

    def dispatch(self, checkin: SafetyCheckin, label: str, now: Optional[datetime] = None) -> DeliveryResult:
        now = now or datetime.now(timezone.utc)
        checkin_id = checkin.id
        user_id = checkin.user_id

        message = initial_checkin_message(checkin_id, label, checkin.scheduled_time)
        result = deliver_safely(
            self.gateway.send_to_user, user_id, message.title, message.body, message.data
        )

        status = DeliveryStatus.SENT if result.success else DeliveryStatus.FAILED
        try:
            self.store.record_notification(
                checkin_id=checkin_id,
                user_id=user_id,
                notification_type=NotificationType.INITIAL_CHECKIN.value,
                delivery_status=status.value,
                sent_at=now,
                error_message=None if result.success else result.error,
            )
        except Exception as e:
            self.store.rollback()
            logger.error(f"Could not log initial notification for check-in {checkin_id}: {e}", exc_info=True)

        if result.unregistered:
            try:
                self.store.deactivate_devices(result.unregistered, now)
            except Exception as e:
                self.store.rollback()
                logger.warning(f"Could not deactivate unregistered devices for user {user_id}: {e}")

        if result.success:
            logger.info(f"Initial notification sent for check-in {checkin_id} ({result.sent} device(s))")
        else:
            logger.warning(f"Initial notification failed for check-in {checkin_id}: {result.error}")
        return result
