"""
Push message templates for the check-in lifecycle.

The mobile app routes on ``data["type"]``; all payload values are strings.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import time
from typing import Dict

from models import ALERT_PRIORITY_HIGH, ALERT_TYPE_NO_RESPONSE

UNKNOWN_USER_NAME = "Unknown User"


@dataclass(frozen=True)
class PushMessage:
    title: str
    body: str
    data: Dict[str, str] = field(default_factory=dict)


def admin_topic(org_id: int) -> str:
    return f"org_{org_id}_alerts"


def _format_time(value) -> str:
    if isinstance(value, time):
        return value.strftime("%H:%M:%S")
    return str(value)


def initial_checkin_message(checkin_id: int, label: str, scheduled_time) -> PushMessage:
    return PushMessage(
        title="⏰ Safety Check-in Required",
        body=f"Time for your {label} check-in",
        data={
            "type": "checkin_alert",
            "checkin_id": str(checkin_id),
            "label": str(label),
            "scheduled_time": _format_time(scheduled_time),
        },
    )


def snooze_reminder_message(checkin_id: int, snooze_number: int, remaining: int) -> PushMessage:
    return PushMessage(
        title="⏰ Check-in Reminder",
        body=f"Please complete your safety check-in ({remaining} snoozes remaining)",
        data={
            "type": "checkin_alert",
            "checkin_id": str(checkin_id),
            "snooze_number": str(snooze_number),
        },
    )


def no_response_admin_message(
    checkin_id: int,
    alert_id: int,
    user_name: str,
    threshold: int,
) -> PushMessage:
    return PushMessage(
        title="🚨 No Response Alert",
        body=f"{user_name or UNKNOWN_USER_NAME} has not responded after {threshold} snoozes",
        data={
            "type": "admin_alert",
            "alert_id": str(alert_id),
            "alert_type": ALERT_TYPE_NO_RESPONSE,
            "priority": ALERT_PRIORITY_HIGH,
            "checkin_id": str(checkin_id),
        },
    )
