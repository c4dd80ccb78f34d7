"""Test loading and validating the TOML configuration document."""

from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from pgconverge.config import (
    ConfigError,
    Database,
    DatabasePermission,
    SchemaPermission,
    TablePermission,
    User,
    config_from_dict,
    load_config,
    parse_config,
)

SAMPLE = """
[[databases]]
name = "metrics"

[[extensions]]
name = "timescaledb"
database = "metrics"

[[users]]
name = "telegraf"
systemd_password_credential = "telegraf-password"

[[users]]
name = "grafana"

[[database_permissions]]
role = "grafana"
permissions = ["CONNECT"]
databases = ["metrics"]

[[schema_permissions]]
role = "telegraf"
permissions = ["CREATE", "USAGE"]
database = "metrics"
schemas = ["public"]
make_default = true

[[table_permissions]]
role = "grafana"
permissions = ["SELECT"]
database = "metrics"
tables = "ALL"
make_default = true

[[table_permissions]]
role = "telegraf"
permissions = ["SELECT", "INSERT"]
database = "metrics"
tables = ["cpu", "mem"]
"""


def test_parse_full_document():
    config = parse_config(SAMPLE)
    assert config.databases == (Database("metrics"),)
    assert config.users == (
        User("telegraf", "telegraf-password"),
        User("grafana", None),
    )
    assert config.schema_permissions == (
        SchemaPermission("telegraf", ("CREATE", "USAGE"), "metrics", ("public",), True),
    )
    assert config.table_permissions == (
        TablePermission("grafana", ("SELECT",), "metrics", "ALL", True),
        TablePermission("telegraf", ("SELECT", "INSERT"), "metrics", ("cpu", "mem"), False),
    )


def test_sections_are_optional():
    config = parse_config('[[databases]]\nname = "only"\n')
    assert config.databases == (Database("only"),)
    assert config.users == ()
    assert config.table_permissions == ()


def test_empty_document():
    assert parse_config("").entities() == []


def test_make_default_defaults_to_false():
    config = config_from_dict({
        "schema_permissions": [
            {"role": "r", "permissions": ["USAGE"], "database": "d", "schemas": ["s"]},
        ]
    })
    assert config.schema_permissions[0].make_default is False


def test_unknown_table_selector_survives_loading():
    """Selector shape is checked during translation, not at load time."""
    config = config_from_dict({
        "table_permissions": [
            {"role": "r", "permissions": ["SELECT"], "database": "d", "tables": "everything"},
        ]
    })
    assert config.table_permissions[0].tables == "everything"


def test_invalid_toml():
    with pytest.raises(ConfigError, match="invalid TOML"):
        parse_config("[[databases]\nname = ")


def test_missing_required_field_names_location():
    with pytest.raises(ConfigError, match=r"users\[1\]\.name: missing required field"):
        parse_config('[[users]]\nname = "a"\n\n[[users]]\nsystemd_password_credential = "x"\n')


def test_wrong_type_for_list_field():
    with pytest.raises(ConfigError, match=r"database_permissions\[0\]\.permissions"):
        config_from_dict({
            "database_permissions": [
                {"role": "r", "permissions": "CONNECT", "databases": ["d"]},
            ]
        })


def test_wrong_type_for_flag():
    with pytest.raises(ConfigError, match="make_default: expected true or false"):
        config_from_dict({
            "table_permissions": [
                {"role": "r", "permissions": ["SELECT"], "database": "d",
                 "tables": "ALL", "make_default": "yes"},
            ]
        })


def test_section_must_be_array_of_tables():
    with pytest.raises(ConfigError, match="databases: expected an array of tables"):
        parse_config('databases = "metrics"\n')


def test_entry_must_be_table():
    with pytest.raises(ConfigError, match=r"databases\[0\]: "):
        config_from_dict({"databases": ["metrics"]})


def test_empty_name_rejected():
    with pytest.raises(ConfigError, match="expected a non-empty string"):
        config_from_dict({"databases": [{"name": ""}]})


def test_unknown_keys_warn(caplog):
    with caplog.at_level(logging.WARNING, logger="pgconverge.config"):
        config_from_dict({"databses": [], "databases": [{"name": "x", "owner": "y"}]})
    assert "unknown top-level key 'databses'" in caplog.text
    assert "databases[0]: ignoring unknown field 'owner'" in caplog.text


def test_load_config_from_file(tmp_path):
    path = tmp_path / "db.toml"
    path.write_text(SAMPLE)
    config = load_config(path)
    assert len(config.entities()) == 8


def test_load_config_missing_file(tmp_path):
    with pytest.raises(ConfigError, match="cannot read config"):
        load_config(tmp_path / "nope.toml")


def test_load_config_error_includes_path(tmp_path):
    path = tmp_path / "db.toml"
    path.write_text("[[databases]]\n")
    with pytest.raises(ConfigError, match=r"db\.toml: databases\[0\]\.name"):
        load_config(path)


@pytest.mark.parametrize(
    "section, entry",
    [
        ("database_permissions", {"role": "r", "permissions": [], "databases": ["d"]}),
        ("schema_permissions", {"role": "r", "permissions": [], "database": "d", "schemas": ["s"]}),
        ("table_permissions", {"role": "r", "permissions": [], "database": "d", "tables": "ALL"}),
    ],
)
def test_empty_permissions_rejected(section, entry):
    with pytest.raises(ConfigError, match=rf"{section}\[0\]\.permissions: expected a non-empty list"):
        config_from_dict({section: [entry]})


def test_empty_permission_in_list_rejected():
    with pytest.raises(ConfigError, match=r"permissions\[1\]: expected a non-empty string"):
        parse_config(
            '[[database_permissions]]\nrole = "r"\npermissions = ["CONNECT", ""]\ndatabases = ["d"]\n'
        )


def test_empty_permissions_rejected_on_construction():
    with pytest.raises(ValidationError):
        DatabasePermission(role="r", permissions=(), databases=("d",))


def test_non_string_name_rejected():
    with pytest.raises(ConfigError, match=r"extensions\[0\]\.database: expected a string"):
        config_from_dict({"extensions": [{"name": "x", "database": 5}]})


def test_all_problems_reported():
    with pytest.raises(ConfigError) as exc_info:
        config_from_dict({"databases": [{}], "users": [{"name": ""}]})
    message = str(exc_info.value)
    assert "databases[0].name: missing required field" in message
    assert "users[0].name: expected a non-empty string" in message
