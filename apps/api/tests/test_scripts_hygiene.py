"""
Guardrails to keep operational scripts free of hardcoded secrets/PII.

The cron entry points run against real environments with real Firebase
service accounts; credentials and user identities must come from env/args.
"""

from __future__ import annotations

from pathlib import Path
import re


FORBIDDEN_REGEXES: list[re.Pattern[str]] = [
    # Any email address literal in scripts (should be env/arg).
    re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    # Inline service-account key material.
    re.compile(r"-----BEGIN (RSA )?PRIVATE KEY-----"),
    re.compile(r"\"private_key_id\"\s*:"),
    # FCM registration tokens are long opaque strings with a colon separator.
    re.compile(r"\b[A-Za-z0-9_-]{20,}:APA91b[A-Za-z0-9_-]{20,}"),
]


def _iter_script_files() -> list[Path]:
    root = Path(__file__).resolve().parents[1]
    scripts_dir = root / "scripts"
    return sorted([p for p in scripts_dir.glob("*.py") if p.is_file()])


def test_scripts_exist() -> None:
    names = [p.name for p in _iter_script_files()]
    assert "run_checkin_job.py" in names


def test_scripts_do_not_contain_forbidden_literals() -> None:
    offenders: list[str] = []

    for path in _iter_script_files():
        text = path.read_text(encoding="utf-8", errors="ignore")
        for rx in FORBIDDEN_REGEXES:
            if rx.search(text):
                offenders.append(f"{path.name}: matches forbidden pattern {rx.pattern!r}")

    assert offenders == [], "Forbidden literals found in scripts:\n" + "\n".join(offenders)
