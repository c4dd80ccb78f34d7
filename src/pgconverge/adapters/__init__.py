"""Session adapters — implementations of the Session protocol."""

from pgconverge.adapters._base import (
    AdapterError,
    Connector,
    Session,
    SessionError,
    StatementError,
)

__all__ = [
    "AdapterError",
    "Connector",
    "Session",
    "SessionError",
    "StatementError",
]
