"""
Configuration and clock tests.

Settings are constructed directly with keyword overrides so the process
environment doesn't leak into the assertions.
"""

import pytest
from datetime import date, datetime, time, timezone
from pydantic import ValidationError

from core.config import Settings
from core.exceptions import ScheduleDataError
from services.checkin_clock import WEEKDAYS, CheckinClock, parse_active_days
from services.job_report import ItemOutcome, ItemResult, JobReport
from services.snooze_monitor import SnoozeMonitor


class TestSettings:

    def test_defaults(self):
        s = Settings(DATABASE_URL="sqlite://")
        assert s.SNOOZE_INTERVAL_MINUTES == 5
        assert s.ESCALATION_THRESHOLD == 3
        assert s.CHECKIN_TIMEZONE == "UTC"
        assert s.REFRESH_SNOOZE_AT_ON_REMINDER is True

    def test_database_url_from_parts(self):
        s = Settings(
            DATABASE_URL=None,
            POSTGRES_USER="svc",
            POSTGRES_PASSWORD="pw",
            POSTGRES_HOST="db.internal",
            POSTGRES_PORT=6543,
            POSTGRES_DB="checkins",
        )
        assert s.database_url == "postgresql://svc:pw@db.internal:6543/checkins"

    def test_explicit_database_url_wins(self):
        s = Settings(DATABASE_URL="sqlite:///tmp/x.db", POSTGRES_HOST="ignored")
        assert s.database_url == "sqlite:///tmp/x.db"

    def test_unknown_timezone_rejected(self):
        with pytest.raises(ValidationError):
            Settings(CHECKIN_TIMEZONE="Mars/Olympus_Mons")

    @pytest.mark.parametrize("field", ["ESCALATION_THRESHOLD", "SNOOZE_INTERVAL_MINUTES"])
    def test_lifecycle_values_must_be_positive(self, field):
        with pytest.raises(ValidationError):
            Settings(**{field: 0})

    def test_monitor_rejects_zero_threshold(self):
        with pytest.raises(ValueError):
            SnoozeMonitor(store=None, gateway=None, clock=CheckinClock(), escalation_threshold=0)


class TestCheckinClock:

    def test_reading_in_utc(self):
        reading = CheckinClock("UTC").read(datetime(2025, 11, 3, 9, 0, 42, 500, tzinfo=timezone.utc))
        assert reading.local_date == date(2025, 11, 3)
        assert reading.minute == time(9, 0)
        assert reading.weekday == "monday"

    def test_naive_instant_is_utc(self):
        reading = CheckinClock("UTC").read(datetime(2025, 11, 3, 9, 0))
        assert reading.instant == datetime(2025, 11, 3, 9, 0, tzinfo=timezone.utc)

    def test_local_fields_follow_zone(self):
        reading = CheckinClock("Asia/Tokyo").read(datetime(2025, 11, 2, 23, 30, tzinfo=timezone.utc))
        assert reading.local_date == date(2025, 11, 3)
        assert reading.minute == time(8, 30)
        assert reading.weekday == "monday"
        assert reading.instant.tzinfo == timezone.utc

    def test_weekday_table_is_monday_first(self):
        assert WEEKDAYS[0] == "monday"
        assert WEEKDAYS[6] == "sunday"


class TestParseActiveDays:

    def test_list_is_normalized(self):
        assert parse_active_days(1, [" Monday", "FRIDAY"]) == {"monday", "friday"}

    def test_json_string(self):
        assert parse_active_days(1, '["sunday"]') == {"sunday"}

    def test_empty_list_means_never(self):
        assert parse_active_days(1, []) == frozenset()

    @pytest.mark.parametrize("raw", [None, 5, "{bad", '{"monday": true}', ["mon"], [None]])
    def test_invalid_values_raise(self, raw):
        with pytest.raises(ScheduleDataError) as exc:
            parse_active_days(42, raw)
        assert exc.value.timing_id == 42


class TestJobReport:

    def test_to_dict_counts_every_outcome(self):
        report = JobReport(job="snooze_monitor", started_at=datetime(2025, 11, 3, tzinfo=timezone.utc))
        report.add(ItemResult(1, ItemOutcome.REMINDED, "reminder 1"))
        report.add(ItemResult(2, ItemOutcome.FAILED, "RuntimeError: boom"))

        data = report.to_dict()

        assert data["processed"] == 2
        assert data["counts"]["reminded"] == 1
        assert data["counts"]["failed"] == 1
        assert data["counts"]["escalated"] == 0
        assert data["errors"] == [{"id": 2, "outcome": "failed", "reason": "RuntimeError: boom"}]

    def test_clean_run_has_no_errors(self):
        report = JobReport(job="timing_evaluator", started_at=datetime(2025, 11, 3, tzinfo=timezone.utc))
        assert report.to_dict()["errors"] is None
