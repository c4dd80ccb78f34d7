"""Dry-run sessions: accept every statement without touching a server."""

from __future__ import annotations


class DryRunSession:
    def __init__(self, conninfo: str) -> None:
        self.conninfo = conninfo
        self.closed = False

    async def execute(self, sql: str) -> None:
        pass

    async def close(self) -> None:
        self.closed = True


async def connect(conninfo: str) -> DryRunSession:
    return DryRunSession(conninfo)
