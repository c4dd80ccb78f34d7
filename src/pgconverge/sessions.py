"""Connection profile parsing and the per-target session multiplexer."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import TracebackType

import psycopg
from psycopg.conninfo import conninfo_to_dict, make_conninfo

from pgconverge.adapters._base import Connector, Session

logger = logging.getLogger(__name__)

_URI_PASSWORD_RE = re.compile(r"(://[^:/@]+:)[^@]+(@)")
_KEYWORD_PASSWORD_RE = re.compile(r"(\bpassword\s*=\s*)('(?:[^'\\]|\\.)*'|\S+)")


class ConnectionProfileError(Exception):
    """The connection string could not be read or parsed."""


def mask_conninfo(value: str) -> str:
    """Mask passwords in URI-style and keyword-style connection strings."""
    value = _URI_PASSWORD_RE.sub(r"\1****\2", value)
    return _KEYWORD_PASSWORD_RE.sub(r"\1****", value)


@dataclass(frozen=True)
class ConnectionProfile:
    """Shared base profile; ``dbname`` (if any) is the administrative database."""

    conninfo: str
    params: dict[str, str] = field(default_factory=dict, compare=False)

    @classmethod
    def parse(cls, conninfo: str) -> ConnectionProfile:
        conninfo = conninfo.strip()
        if not conninfo:
            raise ConnectionProfileError("connection string is empty")
        try:
            params = conninfo_to_dict(conninfo)
        except psycopg.ProgrammingError as e:
            raise ConnectionProfileError(
                f"invalid connection string {mask_conninfo(conninfo)!r}: {e}"
            ) from e
        return cls(conninfo=conninfo, params={k: str(v) for k, v in params.items()})

    @classmethod
    def from_file(cls, path: str | Path) -> ConnectionProfile:
        path = Path(path)
        try:
            text = path.read_text()
        except OSError as e:
            raise ConnectionProfileError(
                f"cannot read connection string from {path}: {e.strerror or e}"
            ) from e
        return cls.parse(text)

    @property
    def admin_database(self) -> str | None:
        return self.params.get("dbname")

    def for_database(self, database: str | None) -> str:
        """Conninfo for ``database``, or the base profile when None."""
        if database is None:
            return self.conninfo
        return make_conninfo(self.conninfo, dbname=database)

    def __str__(self) -> str:
        return mask_conninfo(self.conninfo)


class SessionMultiplexer:
    """Lazily opens one session per target database and reuses it.

    Keys are target database names, with None for the administrative
    connection. Sessions live until ``close()``; use as an async context
    manager so they are released on every exit path.
    """

    def __init__(self, profile: ConnectionProfile, connector: Connector) -> None:
        self._profile = profile
        self._connector = connector
        self._sessions: dict[str | None, Session] = {}

    async def get_or_create(self, target: str | None) -> Session:
        if target in self._sessions:
            return self._sessions[target]

        conninfo = self._profile.for_database(target)
        logger.debug("opening session for %s: %s", target or "<default>", mask_conninfo(conninfo))
        # SessionError propagates: an unreachable target is fatal.
        session = await self._connector(conninfo)
        self._sessions[target] = session
        return session

    def __contains__(self, target: str | None) -> bool:
        return target in self._sessions

    def __len__(self) -> int:
        return len(self._sessions)

    async def close(self) -> None:
        """Close every session, even if some fail; re-raise the first failure."""
        sessions, self._sessions = list(self._sessions.items()), {}
        first_error: Exception | None = None
        for target, session in sessions:
            try:
                await session.close()
            except Exception as e:
                logger.warning("closing session for %s failed: %s", target or "<default>", e)
                if first_error is None:
                    first_error = e
        if first_error is not None:
            raise first_error

    async def __aenter__(self) -> SessionMultiplexer:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        await self.close()
