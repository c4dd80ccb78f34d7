"""PostgreSQL sessions over psycopg (async), in autocommit mode."""

from __future__ import annotations

import psycopg
from psycopg.conninfo import conninfo_to_dict

from pgconverge.adapters._base import SessionError, StatementError

APPLICATION_NAME = "pgconverge"


class PostgresSession:
    """One psycopg connection bound to a single database.

    Autocommit is required: CREATE DATABASE cannot run inside a transaction
    block, and each statement must stand on its own.
    """

    def __init__(self, conn: psycopg.AsyncConnection) -> None:
        self._conn: psycopg.AsyncConnection | None = conn

    @classmethod
    async def connect(cls, conninfo: str) -> PostgresSession:
        try:
            conn = await psycopg.AsyncConnection.connect(
                conninfo, autocommit=True, application_name=APPLICATION_NAME
            )
        except psycopg.Error as e:
            dbname = conninfo_to_dict(conninfo).get("dbname")
            raise SessionError(f"PostgreSQL connection failed: {e}", database=dbname) from e
        return cls(conn)

    async def execute(self, sql: str) -> None:
        if self._conn is None:
            raise StatementError("session is closed")
        try:
            async with self._conn.cursor() as cur:
                await cur.execute(sql)
        except psycopg.Error as e:
            raise StatementError(str(e).strip(), sqlstate=e.sqlstate) from e

    async def close(self) -> None:
        if self._conn is not None:
            await self._conn.close()
            self._conn = None


async def connect(conninfo: str) -> PostgresSession:
    return await PostgresSession.connect(conninfo)
