"""The `apply` command: translate the config and execute it against the server.

Per-statement failures are reported but do not change the exit status unless
--strict is given. Only an unreadable config, an invalid connection string, or
a session that cannot be established exit non-zero by default.
"""

from __future__ import annotations

import asyncio

import click

from pgconverge.adapters import SessionError, dryrun, postgres
from pgconverge.cli._output import format_report
from pgconverge.cli._shared import configure_logging, fail, resolve_profile, translate_config
from pgconverge.executor import Executor, RunReport
from pgconverge.runlog import cleanup_old_logs, log_run
from pgconverge.sessions import ConnectionProfile, SessionMultiplexer
from pgconverge.statements import Statements

STRICT_EXIT_CODE = 2


async def _run_apply(
    statements: Statements,
    profile: ConnectionProfile,
    *,
    dry_run: bool,
) -> tuple[RunReport, SessionError | None]:
    """Run the pipeline. A SessionError stops the run and is returned, not raised."""
    connector = dryrun.connect if dry_run else postgres.connect
    async with SessionMultiplexer(profile, connector) as sessions:
        executor = Executor(sessions, dry_run=dry_run)
        try:
            await executor.run(statements)
        except SessionError as e:
            return executor.report, e
    return executor.report, None


@click.command()
@click.option(
    "--config",
    "config_path",
    default="db.toml",
    show_default=True,
    envvar="PGCONVERGE_CONFIG",
    help="Path to the TOML configuration document.",
)
@click.option("--dsn", envvar="PGCONVERGE_DSN", default=None, help="Connection string (URI or key=value).")
@click.option(
    "--dsn-file",
    type=click.Path(dir_okay=False),
    default=None,
    help="File containing the connection string.",
)
@click.option(
    "--credentials-dir",
    envvar="PGCONVERGE_CREDENTIALS_DIRECTORY",
    default=None,
    help="Directory holding password credentials (default: $CREDENTIALS_DIRECTORY).",
)
@click.option("--dry-run", is_flag=True, help="Walk the full pipeline without connecting or executing.")
@click.option("--strict", is_flag=True, help=f"Exit {STRICT_EXIT_CODE} if any statement failed.")
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format.",
)
@click.option("--no-run-log", is_flag=True, help="Do not append outcomes to ~/.pgconverge/logs.")
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
def apply(
    config_path: str,
    dsn: str | None,
    dsn_file: str | None,
    credentials_dir: str | None,
    dry_run: bool,
    strict: bool,
    output_format: str,
    no_run_log: bool,
    verbose: int,
) -> None:
    """Create databases, extensions, users and grants described in the config."""
    configure_logging(verbose)
    if not no_run_log:
        cleanup_old_logs()

    statements = translate_config(config_path, credentials_dir)
    profile = resolve_profile(dsn, dsn_file, dry_run=dry_run)

    report, session_error = asyncio.run(_run_apply(statements, profile, dry_run=dry_run))

    if not no_run_log:
        log_run(report, config=config_path)
    click.echo(format_report(report, output_format=output_format))

    if session_error is not None:
        fail(str(session_error), session_error)
    if strict and report.has_failures:
        raise SystemExit(STRICT_EXIT_CODE)
