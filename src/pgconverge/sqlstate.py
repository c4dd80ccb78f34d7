"""Server error classes a statement may declare as ignorable.

Codes are PostgreSQL SQLSTATE values (Appendix A of the server docs):
- 42P04  — duplicate_database (CREATE DATABASE on an existing name)
- 42710  — duplicate_object (CREATE USER / CREATE ROLE on an existing name)
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SqlState:
    code: str
    name: str

    def __str__(self) -> str:
        return self.name

    def matches(self, sqlstate: str | None) -> bool:
        return sqlstate is not None and sqlstate == self.code


DUPLICATE_DATABASE = SqlState("42P04", "duplicate_database")
DUPLICATE_OBJECT = SqlState("42710", "duplicate_object")
