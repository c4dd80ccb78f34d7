"""Statements handed from translation to execution, and their safe display form."""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass

from pgconverge.sqlstate import SqlState

# Single-quoted SQL literal, with '' as an escaped quote. An unterminated
# literal runs to the end of the text.
_LITERAL_RE = re.compile(r"'(?:[^']|'')*(?:'|$)")


def redact(sql: str) -> str:
    """Elide the contents of every single-quoted literal in ``sql``.

    >>> redact("ALTER USER bob WITH PASSWORD 'hunter2';")
    "ALTER USER bob WITH PASSWORD '...';"
    """
    return _LITERAL_RE.sub("'...'", sql)


def quote_literal(value: str) -> str:
    """Render ``value`` as a SQL string literal."""
    return "'" + value.replace("'", "''") + "'"


class TranslationError(Exception):
    """An entity could not be turned into statements.

    Stored as a value inside ``Statements``; never aborts sibling entities.
    """

    def __init__(self, entity: str, message: str) -> None:
        super().__init__(f"{entity}: {message}")
        self.entity = entity
        self.message = message


@dataclass(frozen=True)
class Statement:
    database: str | None
    sql: str
    ignorable_errors: tuple[SqlState, ...] = ()

    def ignorable_match(self, sqlstate: str | None) -> SqlState | None:
        """Return the ignorable class matching ``sqlstate``, if any."""
        for state in self.ignorable_errors:
            if state.matches(sqlstate):
                return state
        return None

    def is_ignorable_error(self, sqlstate: str | None) -> bool:
        return self.ignorable_match(sqlstate) is not None

    @property
    def display_sql(self) -> str:
        return redact(self.sql)

    def __str__(self) -> str:
        target = self.database if self.database is not None else "-"
        return f"[{target}] {self.display_sql}"

    def __repr__(self) -> str:
        # Keep secrets out of tracebacks and debug output as well.
        codes = ", ".join(s.code for s in self.ignorable_errors)
        return (
            f"Statement(database={self.database!r}, sql={self.display_sql!r}, "
            f"ignorable_errors=[{codes}])"
        )


StatementResult = Statement | TranslationError


class Statements(list[StatementResult]):
    """Ordered sequence of per-item translation results."""

    def __init__(self, items: Iterable[StatementResult] = ()) -> None:
        super().__init__(items)

    @classmethod
    def failed(cls, entity: str, message: str) -> Statements:
        return cls([TranslationError(entity, message)])

    def ok(self) -> Iterator[Statement]:
        return (item for item in self if isinstance(item, Statement))

    def errors(self) -> Iterator[TranslationError]:
        return (item for item in self if isinstance(item, TranslationError))

    @property
    def has_errors(self) -> bool:
        return any(isinstance(item, TranslationError) for item in self)
