"""CLI entry point."""

from __future__ import annotations

import click

from pgconverge.cli.apply import apply
from pgconverge.cli.plan import plan


@click.group()
@click.version_option(package_name="pgconverge")
def main() -> None:
    """pgconverge: declarative, idempotent PostgreSQL provisioning."""


main.add_command(plan)
main.add_command(apply)
