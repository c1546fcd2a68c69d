"""
Job wiring tests: the entry points used by Celery Beat and cron.

Covers the fatal/non-fatal split: a job that can't reach its store or
gateway reports an error and exits non-zero; per-item failures don't.
"""

import importlib.util
import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from celery.exceptions import SoftTimeLimitExceeded
from sqlalchemy.exc import OperationalError

from core.exceptions import JobFatalError
from models import SafetyAlert, SafetyCheckin
from services.checkin_jobs import JOBS, run_snooze_monitor, run_timing_evaluator
from services.job_report import JobReport
from tests.checkin_helpers import MONDAY_0900, count_rows, minutes_before


def _load_cli():
    path = Path(__file__).resolve().parents[1] / "scripts" / "run_checkin_job.py"
    module_spec = importlib.util.spec_from_file_location("run_checkin_job", path)
    module = importlib.util.module_from_spec(module_spec)
    module_spec.loader.exec_module(module)
    return module


class TestJobEntryPoints:

    def test_evaluator_end_to_end(self, db_session, gateway, make_timing):
        make_timing()

        report = run_timing_evaluator(db=db_session, gateway=gateway, now=MONDAY_0900)

        assert report.job == "timing_evaluator"
        assert report.to_dict()["counts"]["created"] == 1
        assert count_rows(db_session, SafetyCheckin) == 1

    def test_monitor_end_to_end(self, db_session, gateway, make_checkin):
        make_checkin(snooze_count=3, last_snooze_at=minutes_before(MONDAY_0900, 10))

        report = run_snooze_monitor(db=db_session, gateway=gateway, now=MONDAY_0900)

        assert report.job == "snooze_monitor"
        assert report.to_dict()["counts"]["escalated"] == 1
        assert count_rows(db_session, SafetyAlert) == 1

    @pytest.mark.parametrize("job", [run_timing_evaluator, run_snooze_monitor])
    def test_unreadable_store_is_fatal(self, job, gateway):
        db = MagicMock()
        db.scalars.side_effect = OperationalError("SELECT", {}, Exception("server closed the connection"))

        with pytest.raises(JobFatalError):
            job(db=db, gateway=gateway, now=MONDAY_0900)
        db.rollback.assert_called()

    def test_unreachable_database_is_fatal(self, gateway):
        with patch("services.checkin_jobs.check_db_connection", return_value=False):
            with pytest.raises(JobFatalError, match="Database unavailable"):
                run_timing_evaluator(gateway=gateway)

    def test_gateway_built_disabled_when_notifications_off(self, db_session):
        with patch("services.checkin_jobs.get_firebase_app") as get_app:
            report = run_snooze_monitor(db=db_session, now=MONDAY_0900)
        get_app.assert_not_called()
        assert report.items == []


class TestCeleryTasks:

    def test_task_returns_report_dict(self):
        from tasks.checkin_tasks import run_timing_evaluator_task

        report = JobReport(job="timing_evaluator", started_at=MONDAY_0900)
        with patch.dict(JOBS, {"evaluate": MagicMock(return_value=report)}):
            result = run_timing_evaluator_task.run()

        assert result["status"] == "ok"
        assert result["job"] == "timing_evaluator"

    def test_fatal_job_returns_error_status(self):
        from tasks.checkin_tasks import run_snooze_monitor_task

        with patch.dict(JOBS, {"snooze": MagicMock(side_effect=JobFatalError("Database unavailable"))}):
            result = run_snooze_monitor_task.run()

        assert result == {"status": "error", "job": "snooze", "message": "Database unavailable"}

    def test_soft_time_limit_returns_timeout(self):
        from tasks.checkin_tasks import run_snooze_monitor_task

        with patch.dict(JOBS, {"snooze": MagicMock(side_effect=SoftTimeLimitExceeded())}):
            result = run_snooze_monitor_task.run()

        assert result["status"] == "timeout"

    def test_beat_runs_both_jobs_every_minute(self):
        from celerybeat_schedule import beat_schedule

        tasks = {entry["task"] for entry in beat_schedule.values()}
        assert tasks == {"tasks.run_timing_evaluator", "tasks.run_snooze_monitor"}


class TestCli:

    def test_success_prints_report_and_exits_zero(self, capsys):
        cli = _load_cli()
        report = JobReport(job="snooze_monitor", started_at=MONDAY_0900)
        with patch.dict(JOBS, {"snooze": MagicMock(return_value=report)}), \
                patch("core.logging.setup_logging"):
            code = cli.main(["snooze"])

        assert code == 0
        printed = json.loads(capsys.readouterr().out)
        assert printed["job"] == "snooze_monitor"
        assert printed["status"] == "ok"

    def test_fatal_error_exits_non_zero(self, capsys):
        cli = _load_cli()
        with patch.dict(JOBS, {"evaluate": MagicMock(side_effect=JobFatalError("Database unavailable"))}), \
                patch("core.logging.setup_logging"):
            code = cli.main(["evaluate"])

        assert code == 1
        printed = json.loads(capsys.readouterr().out)
        assert printed["status"] == "error"

    def test_quiet_prints_nothing(self, capsys):
        cli = _load_cli()
        report = JobReport(job="timing_evaluator", started_at=MONDAY_0900)
        with patch.dict(JOBS, {"evaluate": MagicMock(return_value=report)}), \
                patch("core.logging.setup_logging"):
            assert cli.main(["evaluate", "--quiet"]) == 0

        assert capsys.readouterr().out == ""

    def test_unknown_job_is_rejected(self):
        cli = _load_cli()
        with pytest.raises(SystemExit):
            cli.main(["cleanup"])
