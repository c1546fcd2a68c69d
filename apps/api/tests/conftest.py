"""
Pytest configuration and fixtures

Every test gets its own in-memory SQLite database built from the ORM
metadata, so nothing leaks between tests. The push gateway is always a
MagicMock: no test talks to Firebase. Sessions are configured like
SessionLocal (expire_on_commit=False), so loaded rows keep their values
across commits exactly as they do in the jobs.
"""
import os
import sys

# Must be set before core.config is imported anywhere.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "false")

# Add the parent directory to the path so we can import from services
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

import pytest
from datetime import time
from unittest.mock import MagicMock
from sqlalchemy.orm import sessionmaker

from core.database import Base, build_engine
from models import (
    CheckinStatus,
    SafetyCheckin,
    SafetyTiming,
    User,
    UserDevice,
    UserProfile,
)
from services.push_gateway import DeliveryResult
from tests.checkin_helpers import MONDAY_0900, WEEKDAYS_ALL


@pytest.fixture(scope="function")
def db_engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(engine)
    yield engine
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture(scope="function")
def db_session(db_engine):
    session = sessionmaker(bind=db_engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def gateway():
    """Gateway double: every delivery succeeds unless a test says otherwise."""
    gw = MagicMock()
    gw.send_to_user.return_value = DeliveryResult(success=True, sent=1)
    gw.send_to_topic.return_value = DeliveryResult(success=True, sent=1)
    return gw


@pytest.fixture
def make_user(db_session):
    counter = {"n": 0}

    def _make(full_name="Test User", tokens=("token-a",)):
        counter["n"] += 1
        user = User(email=f"user{counter['n']}@example.test")
        db_session.add(user)
        db_session.flush()
        if full_name is not None:
            db_session.add(UserProfile(user_id=user.id, full_name=full_name))
        for token in tokens:
            db_session.add(UserDevice(user_id=user.id, device_token=token, is_active=True))
        db_session.commit()
        return user

    return _make


@pytest.fixture
def make_timing(db_session, make_user):
    def _make(user=None, at=time(9, 0), days=None, label="Morning", org_id=7, is_active=True):
        user = user or make_user()
        timing = SafetyTiming(
            user_id=user.id,
            org_id=org_id,
            label=label,
            time_of_day=at,
            active_days=WEEKDAYS_ALL if days is None else days,
            is_active=is_active,
        )
        db_session.add(timing)
        db_session.commit()
        return timing

    return _make


@pytest.fixture
def make_checkin(db_session, make_timing):
    def _make(timing=None, status=CheckinStatus.SNOOZED, snooze_count=0, last_snooze_at=None,
              checkin_date=None):
        timing = timing or make_timing()
        checkin = SafetyCheckin(
            timing_id=timing.id,
            user_id=timing.user_id,
            org_id=timing.org_id,
            checkin_date=checkin_date or MONDAY_0900.date(),
            scheduled_time=timing.time_of_day,
            status=status.value if isinstance(status, CheckinStatus) else status,
            snooze_count=snooze_count,
            last_snooze_at=last_snooze_at,
        )
        db_session.add(checkin)
        db_session.commit()
        return checkin

    return _make
