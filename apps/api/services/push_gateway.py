"""
Push Notification Gateway

Firebase Cloud Messaging delivery for check-in notifications.

Contract (both operations):
- best-effort: a failed delivery is returned as a DeliveryResult, never raised
- payload values are coerced to strings (FCM data must be str -> str)
- each HTTP call is bounded by NOTIFICATION_TIMEOUT_S

send_to_user fans out to every active device token of the user; the result
is a success when at least one device accepted the message. Tokens FCM
reports as unregistered are returned so the caller can deactivate them.
"""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

import firebase_admin
from firebase_admin import credentials, messaging

from core.config import settings
from core.exceptions import JobFatalError
import logging

logger = logging.getLogger(__name__)

_APP_NAME = "safety-checkin"
_app_lock = threading.Lock()


@dataclass
class DeliveryResult:
    success: bool
    error: Optional[str] = None
    sent: int = 0
    failed: int = 0
    unregistered: List[str] = field(default_factory=list)

    @classmethod
    def failure(cls, error: str) -> "DeliveryResult":
        return cls(success=False, error=error)


def get_firebase_app() -> firebase_admin.App:
    """
    Return the process-wide Firebase app, initializing it on first use.

    Raises JobFatalError when the service account file is missing or invalid;
    a job cannot notify anyone without it.
    """
    with _app_lock:
        try:
            return firebase_admin.get_app(_APP_NAME)
        except ValueError:
            pass

        path = settings.FIREBASE_CREDENTIALS_PATH
        if not os.path.exists(path):
            raise JobFatalError(f"Firebase service account JSON not found at {path}")
        try:
            cred = credentials.Certificate(path)
            return firebase_admin.initialize_app(
                cred,
                options={"httpTimeout": settings.NOTIFICATION_TIMEOUT_S},
                name=_APP_NAME,
            )
        except (ValueError, IOError) as e:
            raise JobFatalError(f"Could not initialize Firebase: {e}") from e


def _stringify(data: Optional[Dict]) -> Dict[str, str]:
    return {str(k): "" if v is None else str(v) for k, v in (data or {}).items()}


def _token_preview(token: str) -> str:
    return token[-12:] if len(token) > 12 else token


class PushGateway:
    """
    FCM-backed gateway.

    ``token_lookup`` maps a user id to that user's active device tokens;
    the jobs pass CheckinStore.active_device_tokens.
    """

    def __init__(
        self,
        token_lookup: Callable[[int], List[str]],
        app: Optional[firebase_admin.App] = None,
        enabled: Optional[bool] = None,
    ):
        self.token_lookup = token_lookup
        self.app = app
        self.enabled = settings.NOTIFICATIONS_ENABLED if enabled is None else enabled

    def _send(self, message: messaging.Message) -> str:
        return messaging.send(message, app=self.app)

    def send_to_user(self, user_id: int, title: str, body: str, data: Optional[Dict] = None) -> DeliveryResult:
        if not self.enabled:
            logger.info(f"Notifications disabled, would send '{title}' to user {user_id}")
            return DeliveryResult.failure("notifications disabled")

        try:
            tokens = self.token_lookup(user_id)
        except Exception as e:
            logger.error(f"Device lookup failed for user {user_id}: {e}")
            return DeliveryResult.failure(f"device lookup failed: {e}")

        if not tokens:
            logger.info(f"No active devices for user {user_id}")
            return DeliveryResult.failure("No devices")

        payload = _stringify(data)
        result = DeliveryResult(success=False)
        errors = []

        for token in tokens:
            message = messaging.Message(
                token=token,
                notification=messaging.Notification(title=title, body=body),
                data=payload,
                android=messaging.AndroidConfig(priority="high"),
            )
            try:
                response = self._send(message)
                logger.debug(f"FCM send ok -> token=...{_token_preview(token)} user={user_id} response={response}")
                result.sent += 1
            except messaging.UnregisteredError:
                logger.info(f"FCM token ...{_token_preview(token)} for user {user_id} is unregistered")
                result.failed += 1
                result.unregistered.append(token)
                errors.append("Unregistered token")
            except Exception as e:
                logger.warning(f"FCM send failed -> token=...{_token_preview(token)} user={user_id}: {e}")
                result.failed += 1
                errors.append(str(e))

        result.success = result.sent > 0
        if not result.success:
            result.error = "; ".join(errors) or "All deliveries failed"
        return result

    def send_to_topic(self, topic: str, title: str, body: str, data: Optional[Dict] = None) -> DeliveryResult:
        if not self.enabled:
            logger.info(f"Notifications disabled, would send '{title}' to topic {topic}")
            return DeliveryResult.failure("notifications disabled")

        message = messaging.Message(
            topic=topic,
            notification=messaging.Notification(title=title, body=body),
            data=_stringify(data),
            android=messaging.AndroidConfig(priority="high"),
        )
        try:
            response = self._send(message)
            logger.debug(f"FCM topic send ok -> topic={topic} response={response}")
            return DeliveryResult(success=True, sent=1)
        except Exception as e:
            logger.warning(f"FCM topic send failed -> topic={topic}: {e}")
            return DeliveryResult(success=False, error=str(e), failed=1)
