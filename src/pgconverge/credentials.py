"""Credential sources for user passwords (systemd: $CREDENTIALS_DIRECTORY/<name>)."""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

CREDENTIALS_ENV = "CREDENTIALS_DIRECTORY"


class CredentialError(Exception):
    """A credential reference could not be resolved to a secret."""


class CredentialSource(Protocol):
    def resolve(self, name: str) -> str: ...


class SystemdCredentials:
    """Read secrets from a systemd credential directory.

    ``directory`` defaults to ``$CREDENTIALS_DIRECTORY``, which systemd sets
    for units declaring ``LoadCredential=``. Resolution is deferred until a
    credential is actually needed, so configs without passwords work anywhere.
    """

    def __init__(self, directory: str | os.PathLike[str] | None = None) -> None:
        self._directory = Path(directory) if directory is not None else None

    @property
    def directory(self) -> Path | None:
        if self._directory is not None:
            return self._directory
        env = os.environ.get(CREDENTIALS_ENV)
        return Path(env) if env else None

    def resolve(self, name: str) -> str:
        directory = self.directory
        if directory is None:
            raise CredentialError(
                f'credential "{name}" requested but ${CREDENTIALS_ENV} is not set'
            )
        if not name or "/" in name or name in (".", ".."):
            raise CredentialError(f'invalid credential name "{name}"')

        path = directory / name
        try:
            secret = path.read_text().rstrip("\r\n")
        except OSError as e:
            raise CredentialError(f'cannot read credential "{name}": {e.strerror}') from e
        if not secret:
            raise CredentialError(f'credential "{name}" is empty')
        return secret


class StaticCredentials:
    """In-memory credential source, mainly for tests and embedding."""

    def __init__(self, secrets: Mapping[str, str]) -> None:
        self._secrets = dict(secrets)

    def resolve(self, name: str) -> str:
        try:
            return self._secrets[name]
        except KeyError:
            raise CredentialError(f'unknown credential "{name}"') from None
