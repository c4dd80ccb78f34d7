"""Session protocol — the abstraction boundary between the engine and the driver."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Protocol, runtime_checkable


class AdapterError(Exception):
    """Raised by adapters for connection/execution failures."""


class SessionError(AdapterError):
    """A session could not be established. Fatal to the run."""

    def __init__(self, message: str, *, database: str | None = None) -> None:
        super().__init__(message)
        self.database = database


class StatementError(AdapterError):
    """The server rejected a statement.

    ``sqlstate`` is the server's error class (SQLSTATE), or None when the
    failure carries no code (e.g. the connection dropped mid-statement).
    """

    def __init__(self, message: str, *, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.sqlstate = sqlstate


@runtime_checkable
class Session(Protocol):
    """An open connection to one target database."""

    async def execute(self, sql: str) -> None: ...
    async def close(self) -> None: ...


# Establishes a session from a fully-resolved conninfo string.
Connector = Callable[[str], Awaitable[Session]]
