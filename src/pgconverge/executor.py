"""Execution loop — apply statements in order, classifying each failure.

Per item:
    1. Translation failure → record, move on.
    2. Acquire the target's session (SessionError is fatal to the run).
    3. Execute the SQL text as-is.
    4. Success → ``succeeded``.
    5. Server error → ``ignored`` when its SQLSTATE is in the statement's
       ignorable set, else ``failed``. Either way the loop continues.
"""

from __future__ import annotations

import enum
import logging
from collections import Counter
from dataclasses import dataclass, field

from pgconverge.adapters._base import AdapterError, StatementError
from pgconverge.sessions import SessionMultiplexer
from pgconverge.statements import Statement, Statements, TranslationError, redact

logger = logging.getLogger(__name__)


class Disposition(enum.Enum):
    SUCCEEDED = "succeeded"
    IGNORED = "ignored"
    FAILED = "failed"
    TRANSLATION_FAILED = "translation_failed"
    PLANNED = "planned"  # dry run: nothing executed


@dataclass(frozen=True)
class Outcome:
    disposition: Disposition
    sql: str | None = None  # always redacted
    database: str | None = None
    error_class: str | None = None
    detail: str | None = None

    @classmethod
    def for_statement(
        cls,
        disposition: Disposition,
        statement: Statement,
        *,
        error_class: str | None = None,
        detail: str | None = None,
    ) -> Outcome:
        return cls(
            disposition=disposition,
            sql=statement.display_sql,
            database=statement.database,
            error_class=error_class,
            detail=redact(detail) if detail is not None else None,
        )


@dataclass
class RunReport:
    outcomes: list[Outcome] = field(default_factory=list)
    dry_run: bool = False
    aborted: str | None = None

    def record(self, outcome: Outcome) -> None:
        self.outcomes.append(outcome)

    def counts(self) -> dict[str, int]:
        counter = Counter(o.disposition for o in self.outcomes)
        return {d.value: counter.get(d, 0) for d in Disposition}

    @property
    def has_failures(self) -> bool:
        """True if any statement failed or any entity could not be translated."""
        return any(
            o.disposition in (Disposition.FAILED, Disposition.TRANSLATION_FAILED)
            for o in self.outcomes
        )


class Executor:
    """Walks a statement collection against a session multiplexer.

    ``report`` stays readable after a fatal SessionError, holding every
    outcome recorded before the run stopped.
    """

    def __init__(self, sessions: SessionMultiplexer, *, dry_run: bool = False) -> None:
        self._sessions = sessions
        self.dry_run = dry_run
        self.report = RunReport(dry_run=dry_run)

    async def run(self, statements: Statements) -> RunReport:
        for item in statements:
            if isinstance(item, TranslationError):
                logger.error("translation failed: %s", redact(str(item)))
                self.report.record(
                    Outcome(disposition=Disposition.TRANSLATION_FAILED, detail=redact(str(item)))
                )
                continue
            await self._apply(item)
        return self.report

    async def _apply(self, statement: Statement) -> None:
        try:
            session = await self._sessions.get_or_create(statement.database)
        except AdapterError as e:
            self.report.aborted = redact(str(e))
            raise

        if self.dry_run:
            logger.info("dry run: %s", statement)
            self.report.record(Outcome.for_statement(Disposition.PLANNED, statement))
            return

        try:
            await session.execute(statement.sql)
        except StatementError as e:
            matched = statement.ignorable_match(e.sqlstate)
            if matched is not None:
                logger.info("ignored: %s (%s)", statement, matched)
                self.report.record(
                    Outcome.for_statement(
                        Disposition.IGNORED, statement, error_class=str(matched), detail=str(e)
                    )
                )
            else:
                logger.error("failed: %s: %s", statement, redact(str(e)))
                self.report.record(
                    Outcome.for_statement(
                        Disposition.FAILED, statement, error_class=e.sqlstate, detail=str(e)
                    )
                )
            return

        logger.info("succeeded: %s", statement)
        self.report.record(Outcome.for_statement(Disposition.SUCCEEDED, statement))


async def execute(
    statements: Statements, sessions: SessionMultiplexer, *, dry_run: bool = False
) -> RunReport:
    """Run every statement in order and return the report."""
    return await Executor(sessions, dry_run=dry_run).run(statements)
