"""Declarative configuration — entity kinds and their translation to statements.

Each entity kind is an independent frozen pydantic dataclass satisfying the
``ToStatements`` protocol. Field shapes are validated on construction;
translation is a pure function of the entity and the credential source: no
connections, no mutation.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import tomllib
from collections.abc import Sequence
from pathlib import Path
from typing import Annotated, Any, Protocol, runtime_checkable

from pydantic import (
    Field,
    StrictBool,
    StringConstraints,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.dataclasses import dataclass

from pgconverge import sqlstate
from pgconverge.credentials import CredentialError, CredentialSource
from pgconverge.statements import Statement, Statements, quote_literal

logger = logging.getLogger(__name__)

ALL_TABLES = "ALL"

Name = Annotated[str, StringConstraints(strict=True, min_length=1)]
Names = tuple[Name, ...]
# GRANT needs at least one privilege.
Verbs = Annotated[tuple[Name, ...], Field(min_length=1)]


class ConfigError(Exception):
    """Configuration document missing, unreadable, or structurally invalid."""


@runtime_checkable
class ToStatements(Protocol):
    def to_statements(self, credentials: CredentialSource) -> Statements: ...


def _verbs(permissions: Sequence[str]) -> str:
    return ", ".join(permissions)


@dataclass(frozen=True)
class Database:
    name: Name

    def to_statements(self, credentials: CredentialSource) -> Statements:
        return Statements([
            Statement(
                database=None,
                sql=f"CREATE DATABASE {self.name};",
                ignorable_errors=(sqlstate.DUPLICATE_DATABASE,),
            )
        ])


@dataclass(frozen=True)
class Extension:
    name: Name
    database: Name

    def to_statements(self, credentials: CredentialSource) -> Statements:
        return Statements([
            Statement(
                database=self.database,
                sql=f"CREATE EXTENSION IF NOT EXISTS {self.name};",
            )
        ])


@dataclass(frozen=True)
class User:
    name: Name
    systemd_password_credential: Name | None = None

    def to_statements(self, credentials: CredentialSource) -> Statements:
        create = Statement(
            database=None,
            sql=f"CREATE USER {self.name};",
            ignorable_errors=(sqlstate.DUPLICATE_OBJECT,),
        )
        if self.systemd_password_credential is None:
            return Statements([create])

        try:
            secret = credentials.resolve(self.systemd_password_credential)
        except CredentialError as e:
            return Statements.failed(f"user {self.name}", str(e))

        # Not ignorable: a failed password change must be visible.
        return Statements([
            create,
            Statement(
                database=None,
                sql=f"ALTER USER {self.name} WITH PASSWORD {quote_literal(secret)};",
            ),
        ])


@dataclass(frozen=True)
class DatabasePermission:
    role: Name
    permissions: Verbs
    databases: Names

    def to_statements(self, credentials: CredentialSource) -> Statements:
        return Statements(
            Statement(
                database=database,
                sql=f"GRANT {_verbs(self.permissions)} ON DATABASE {database} TO {self.role};",
            )
            for database in self.databases
        )


@dataclass(frozen=True)
class SchemaPermission:
    role: Name
    permissions: Verbs
    database: Name
    schemas: Names
    make_default: StrictBool = False

    def to_statements(self, credentials: CredentialSource) -> Statements:
        verbs = _verbs(self.permissions)
        statements = Statements()
        for schema in self.schemas:
            statements.append(
                Statement(
                    database=self.database,
                    sql=f"GRANT {verbs} ON SCHEMA {schema} TO {self.role};",
                )
            )
            # Emitted once per schema, not deduplicated.
            if self.make_default:
                statements.append(
                    Statement(
                        database=self.database,
                        sql=f"ALTER DEFAULT PRIVILEGES GRANT {verbs} ON SCHEMAS TO {self.role};",
                    )
                )
        return statements


def render_table_selector(tables: object) -> str | None:
    """Render a table selector as a GRANT object clause.

    ``"ALL"`` selects every table in the public schema; a non-empty list of
    names selects those tables. Returns None for any other shape.
    """
    if tables == ALL_TABLES:
        # The schema is fixed to public.
        return "ALL IN SCHEMA public"
    if (
        isinstance(tables, (list, tuple))
        and tables
        and all(isinstance(t, str) and t for t in tables)
    ):
        return f"TABLE {', '.join(tables)}"
    return None


@dataclass(frozen=True)
class TablePermission:
    role: Name
    permissions: Verbs
    database: Name
    # Raw selector: "ALL" or a list of table names, resolved at translation.
    tables: Any
    make_default: StrictBool = False

    @field_validator("tables", mode="before")
    @classmethod
    def freeze_list(cls, value: Any) -> Any:
        return tuple(value) if isinstance(value, list) else value

    def to_statements(self, credentials: CredentialSource) -> Statements:
        clause = render_table_selector(self.tables)
        if clause is None:
            return Statements.failed(
                f"table permission for {self.role} on {self.database}",
                f"unrecognized tables selector {json.dumps(self.tables, default=str)} "
                f"(expected \"{ALL_TABLES}\" or a list of table names)",
            )

        verbs = _verbs(self.permissions)
        statements = Statements([
            Statement(
                database=self.database,
                sql=f"GRANT {verbs} ON {clause} TO {self.role};",
            )
        ])
        if self.make_default:
            statements.append(
                Statement(
                    database=self.database,
                    sql=f"ALTER DEFAULT PRIVILEGES GRANT {verbs} ON TABLES TO {self.role};",
                )
            )
        return statements


@dataclass(frozen=True)
class Config:
    databases: tuple[Database, ...] = ()
    extensions: tuple[Extension, ...] = ()
    users: tuple[User, ...] = ()
    database_permissions: tuple[DatabasePermission, ...] = ()
    schema_permissions: tuple[SchemaPermission, ...] = ()
    table_permissions: tuple[TablePermission, ...] = ()

    def entities(self) -> list[ToStatements]:
        """All entities in dependency order: objects before grants on them."""
        return [
            *self.databases,
            *self.extensions,
            *self.users,
            *self.database_permissions,
            *self.schema_permissions,
            *self.table_permissions,
        ]

    def to_statements(self, credentials: CredentialSource) -> Statements:
        statements = Statements()
        for entity in self.entities():
            statements.extend(entity.to_statements(credentials))
        return statements




# -- Loading -------------------------------------------------------------------

_CONFIG_ADAPTER = TypeAdapter(Config)

_MESSAGES = {
    "missing": "missing required field",
    "missing_argument": "missing required field",
    "string_type": "expected a string",
    "string_too_short": "expected a non-empty string",
    "tuple_type": "expected an array",
    "too_short": "expected a non-empty list",
    "bool_type": "expected true or false",
    "dataclass_type": "expected a table",
}


def _location(loc: tuple[int | str, ...]) -> str:
    """``("users", 2, "name")`` → ``users[2].name``."""
    where = ""
    for part in loc:
        if isinstance(part, int):
            where += f"[{part}]"
        else:
            where += f".{part}" if where else str(part)
    return where


def _describe(e: ValidationError) -> str:
    problems = []
    for err in e.errors():
        message = _MESSAGES.get(err["type"], err["msg"])
        if err["type"] == "tuple_type" and len(err["loc"]) == 1:
            message = "expected an array of tables"
        where = _location(err["loc"])
        problems.append(f"{where}: {message}" if where else message)
    return "; ".join(problems)


_SECTIONS: dict[str, type] = {
    "databases": Database,
    "extensions": Extension,
    "users": User,
    "database_permissions": DatabasePermission,
    "schema_permissions": SchemaPermission,
    "table_permissions": TablePermission,
}


def _warn_unknown(data: dict[str, Any]) -> None:
    for key in sorted(set(data) - set(_SECTIONS)):
        logger.warning("ignoring unknown top-level key '%s'", key)

    for section, cls in _SECTIONS.items():
        known = {f.name for f in dataclasses.fields(cls)}
        for i, item in enumerate(data.get(section, [])):
            for key in sorted(set(item) - known):
                logger.warning("%s[%d]: ignoring unknown field '%s'", section, i, key)


def config_from_dict(data: dict[str, Any]) -> Config:
    """Build a Config from an already-parsed document."""
    try:
        config = _CONFIG_ADAPTER.validate_python(data)
    except ValidationError as e:
        raise ConfigError(_describe(e)) from e
    _warn_unknown(data)
    return config


def parse_config(text: str) -> Config:
    try:
        data = tomllib.loads(text)
    except tomllib.TOMLDecodeError as e:
        raise ConfigError(f"invalid TOML: {e}") from e
    return config_from_dict(data)


def load_config(path: str | Path) -> Config:
    """Read and validate the configuration document at ``path``."""
    path = Path(path)
    try:
        text = path.read_text()
    except OSError as e:
        raise ConfigError(f"cannot read config {path}: {e.strerror or e}") from e
    try:
        return parse_config(text)
    except ConfigError as e:
        raise ConfigError(f"{path}: {e}") from e
