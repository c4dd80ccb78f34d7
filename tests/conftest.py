"""Root conftest — shared fixtures and markers."""

from __future__ import annotations

import os

import pytest


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: requires running PostgreSQL server")


def pytest_collection_modifyitems(config, items):
    if os.environ.get("PGCONVERGE_TEST_POSTGRES"):
        return

    skip_pg = pytest.mark.skip(reason="Postgres not available (set PGCONVERGE_TEST_POSTGRES=1)")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


@pytest.fixture(autouse=True)
def _isolated_run_log(tmp_path, monkeypatch):
    """Keep run logs written by CLI tests out of the real home directory."""
    monkeypatch.setattr("pgconverge.runlog._LOG_ROOT", tmp_path / "runlogs")
