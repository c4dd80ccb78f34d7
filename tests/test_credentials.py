"""Test credential resolution."""

import pytest

from pgconverge.credentials import (
    CREDENTIALS_ENV,
    CredentialError,
    StaticCredentials,
    SystemdCredentials,
)


def test_resolve_from_directory(tmp_path):
    (tmp_path / "grafana").write_text("hunter2\n")
    assert SystemdCredentials(tmp_path).resolve("grafana") == "hunter2"


def test_resolve_from_environment(tmp_path, monkeypatch):
    (tmp_path / "grafana").write_text("hunter2")
    monkeypatch.setenv(CREDENTIALS_ENV, str(tmp_path))
    assert SystemdCredentials().resolve("grafana") == "hunter2"


def test_explicit_directory_wins_over_environment(tmp_path, monkeypatch):
    env_dir = tmp_path / "env"
    env_dir.mkdir()
    (env_dir / "pw").write_text("from-env")
    explicit = tmp_path / "explicit"
    explicit.mkdir()
    (explicit / "pw").write_text("from-option")

    monkeypatch.setenv(CREDENTIALS_ENV, str(env_dir))
    assert SystemdCredentials(explicit).resolve("pw") == "from-option"


def test_no_directory(monkeypatch):
    monkeypatch.delenv(CREDENTIALS_ENV, raising=False)
    with pytest.raises(CredentialError, match="is not set"):
        SystemdCredentials().resolve("grafana")


def test_missing_file(tmp_path):
    with pytest.raises(CredentialError, match='cannot read credential "grafana"'):
        SystemdCredentials(tmp_path).resolve("grafana")


def test_empty_file(tmp_path):
    (tmp_path / "grafana").write_text("\n")
    with pytest.raises(CredentialError, match="is empty"):
        SystemdCredentials(tmp_path).resolve("grafana")


def test_path_traversal_rejected(tmp_path):
    with pytest.raises(CredentialError, match="invalid credential name"):
        SystemdCredentials(tmp_path).resolve("../etc/passwd")


def test_static_credentials():
    creds = StaticCredentials({"a": "b"})
    assert creds.resolve("a") == "b"
    with pytest.raises(CredentialError, match="unknown credential"):
        creds.resolve("c")
