"""Run logging — daily JSONL files per project, with automatic retention cleanup."""

from __future__ import annotations

import contextlib
import json
import os
import uuid
from datetime import UTC, datetime, timedelta
from pathlib import Path

from pgconverge.executor import RunReport

DEFAULT_RETENTION_DAYS = 30
_LOG_ROOT = Path.home() / ".pgconverge" / "logs"


def _project_slug() -> str:
    """Encode cwd into a directory-safe slug."""
    cwd = os.getcwd()
    return cwd.replace("/", "-").lstrip("-")


def _log_dir() -> Path:
    return _LOG_ROOT / _project_slug()


def _today_file() -> Path:
    today = datetime.now(UTC).strftime("%Y-%m-%d")
    return _log_dir() / f"{today}.jsonl"


def log_run(report: RunReport, *, config: str | None = None) -> Path:
    """Append one entry per outcome to today's JSONL file.

    SQL in the report is already redacted; nothing else carries secrets.
    """
    run_id = uuid.uuid4().hex
    ts = datetime.now(UTC).isoformat()

    log_file = _today_file()
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "a") as f:
        for seq, outcome in enumerate(report.outcomes):
            entry = {
                "ts": ts,
                "run": run_id,
                "seq": seq,
                "config": config,
                "dry_run": report.dry_run,
                "disposition": outcome.disposition.value,
                "db": outcome.database,
                "sql": outcome.sql,
                "error_class": outcome.error_class,
                "detail": outcome.detail,
            }
            f.write(json.dumps(entry, default=str) + "\n")
        if report.aborted is not None:
            entry = {
                "ts": ts,
                "run": run_id,
                "seq": len(report.outcomes),
                "config": config,
                "dry_run": report.dry_run,
                "disposition": "aborted",
                "detail": report.aborted,
            }
            f.write(json.dumps(entry, default=str) + "\n")
    return log_file


def cleanup_old_logs(*, retention_days: int = DEFAULT_RETENTION_DAYS) -> int:
    """Delete log files older than retention_days. Returns count of deleted files."""
    cutoff = datetime.now(UTC) - timedelta(days=retention_days)
    deleted = 0

    log_dir = _log_dir()
    if not log_dir.exists():
        return 0

    for log_file in log_dir.glob("*.jsonl"):
        # Parse date from filename (YYYY-MM-DD.jsonl)
        try:
            file_date = datetime.strptime(log_file.stem, "%Y-%m-%d").replace(tzinfo=UTC)
        except ValueError:
            continue
        if file_date < cutoff:
            log_file.unlink()
            deleted += 1

    # Remove empty project directories
    with contextlib.suppress(OSError):
        log_dir.rmdir()

    return deleted
