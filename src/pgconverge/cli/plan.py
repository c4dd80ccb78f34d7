"""The `plan` command: translate the config and print statements without connecting."""

from __future__ import annotations

import click

from pgconverge.cli._output import format_statements
from pgconverge.cli._shared import configure_logging, translate_config


@click.command()
@click.option(
    "--config",
    "config_path",
    default="db.toml",
    show_default=True,
    envvar="PGCONVERGE_CONFIG",
    help="Path to the TOML configuration document.",
)
@click.option(
    "--credentials-dir",
    envvar="PGCONVERGE_CREDENTIALS_DIRECTORY",
    default=None,
    help="Directory holding password credentials (default: $CREDENTIALS_DIRECTORY).",
)
@click.option(
    "--format",
    "output_format",
    type=click.Choice(["json", "text"]),
    default="text",
    help="Output format.",
)
@click.option("-v", "--verbose", count=True, help="Increase log verbosity (-v, -vv).")
def plan(
    config_path: str,
    credentials_dir: str | None,
    output_format: str,
    verbose: int,
) -> None:
    """Print the statements `apply` would run, with secrets elided."""
    configure_logging(verbose)
    statements = translate_config(config_path, credentials_dir)
    output = format_statements(statements, output_format=output_format)
    if output:
        click.echo(output)
