"""Shared output formatting for CLI commands."""

from __future__ import annotations

import json

from pgconverge.executor import Disposition, Outcome, RunReport
from pgconverge.statements import Statement, Statements, TranslationError


def _target(database: str | None) -> str:
    return database if database is not None else "-"


def format_statements(statements: Statements, *, output_format: str = "text") -> str:
    """Render a translated (not executed) collection."""
    if output_format == "json":
        items: list[dict[str, object]] = []
        for item in statements:
            if isinstance(item, TranslationError):
                items.append({"error": str(item)})
            else:
                items.append(_statement_to_dict(item))
        return json.dumps({"statements": items}, indent=2)

    lines: list[str] = []
    for item in statements:
        if isinstance(item, TranslationError):
            lines.append(f"error: {item}")
        else:
            lines.append(str(item))
    return "\n".join(lines)


def _statement_to_dict(statement: Statement) -> dict[str, object]:
    return {
        "database": statement.database,
        "sql": statement.display_sql,
        "ignorable_errors": [str(s) for s in statement.ignorable_errors],
    }


def _outcome_line(o: Outcome) -> str:
    if o.disposition == Disposition.TRANSLATION_FAILED:
        return f"error: translation failed: {o.detail}"
    line = f"{o.disposition.value} [{_target(o.database)}] {o.sql}"
    if o.disposition == Disposition.IGNORED:
        line += f" ({o.error_class})"
    elif o.disposition == Disposition.FAILED:
        line += f": {o.detail}"
    return line


def format_report(report: RunReport, *, output_format: str = "text") -> str:
    counts = report.counts()
    if output_format == "json":
        data: dict[str, object] = {
            "dry_run": report.dry_run,
            "aborted": report.aborted,
            "counts": counts,
            "outcomes": [
                {
                    "disposition": o.disposition.value,
                    "database": o.database,
                    "sql": o.sql,
                    "error_class": o.error_class,
                    "detail": o.detail,
                }
                for o in report.outcomes
            ],
        }
        return json.dumps(data, indent=2)

    lines = [_outcome_line(o) for o in report.outcomes]
    if report.aborted is not None:
        lines.append(f"aborted: {report.aborted}")
    summary = ", ".join(f"{n} {name.replace('_', ' ')}" for name, n in counts.items() if n)
    lines.append(f"\n({summary or 'nothing to do'})")
    return "\n".join(lines)
