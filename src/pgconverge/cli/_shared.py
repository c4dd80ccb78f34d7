"""Shared helpers for plan and apply commands."""

from __future__ import annotations

import logging
from typing import NoReturn

import click

from pgconverge.config import ConfigError, load_config
from pgconverge.credentials import SystemdCredentials
from pgconverge.sessions import ConnectionProfile, ConnectionProfileError
from pgconverge.statements import Statements

LOG_FORMAT = "%(levelname)s %(name)s: %(message)s"


def configure_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(level=level, format=LOG_FORMAT)


def fail(message: str, cause: Exception | None = None) -> NoReturn:
    click.echo(f"error: {message}", err=True)
    raise SystemExit(1) from cause


def translate_config(config_path: str, credentials_dir: str | None) -> Statements:
    """Load the config and translate it. ConfigError exits the process."""
    try:
        config = load_config(config_path)
    except ConfigError as e:
        fail(str(e), e)
    return config.to_statements(SystemdCredentials(credentials_dir))


def resolve_profile(
    dsn: str | None, dsn_file: str | None, *, dry_run: bool
) -> ConnectionProfile:
    """Resolve the base profile from --dsn or --dsn-file. Exactly one source required."""
    if dsn and dsn_file:
        raise click.UsageError("Provide --dsn or --dsn-file, not both.")
    try:
        if dsn_file:
            return ConnectionProfile.from_file(dsn_file)
        if dsn:
            return ConnectionProfile.parse(dsn)
    except ConnectionProfileError as e:
        fail(str(e), e)
    if dry_run:
        # Nothing connects during a dry run; libpq defaults stand in.
        return ConnectionProfile(conninfo="")
    raise click.UsageError("Missing connection string. Use --dsn or --dsn-file.")
