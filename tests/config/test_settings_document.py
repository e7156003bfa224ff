"""Tests for the persisted settings document (torrentd.config.settings)."""

from __future__ import annotations

import json
import tomllib
from ipaddress import IPv4Address, IPv6Address
from pathlib import Path

import pytest
from pydantic import ValidationError as PydanticValidationError

from torrentd.config.settings import (
    default_settings,
    deserialize,
    find_settings_file,
    load_settings,
    save_settings,
    serialize,
    settings_schema,
)
from torrentd.models import (
    EncryptionMode,
    LogLevel,
    PreallocationMode,
    SessionSettings,
)
from torrentd.utils.exceptions import (
    InvalidValueError,
    MalformedDocumentError,
    MissingFieldError,
    OutOfRangeError,
    SchemaError,
    UnknownVariantError,
)

pytestmark = [pytest.mark.unit, pytest.mark.config]


def _document(**changes):
    data = json.loads(serialize(default_settings()))
    data.update(changes)
    return json.dumps(data).encode("utf-8")


class TestDefaults:
    """Schema defaults."""

    def test_defaults_validate(self):
        settings = default_settings()
        assert SessionSettings.model_validate(settings.model_dump()) == settings

    def test_defaults_need_no_input(self):
        settings = SessionSettings()
        assert settings.rpc_port == 9091
        assert settings.peer_port == 51413
        assert settings.encryption is EncryptionMode.ENCRYPTION_PREFERRED
        assert settings.message_level is LogLevel.INFO
        assert settings.preallocation is PreallocationMode.SPARSE
        assert settings.umask == 0o022
        assert settings.rpc_whitelist == [IPv4Address("127.0.0.1"), IPv6Address("::1")]
        assert settings.bind_address_ipv6 == IPv6Address("::")

    def test_default_dirs_follow_platform_downloads(self, tmp_path):
        settings = default_settings()
        assert settings.download_dir == tmp_path / "Downloads"
        assert settings.incomplete_dir == tmp_path / "Downloads"
        assert settings.watch_dir is None

    def test_settings_are_immutable(self):
        settings = default_settings()
        with pytest.raises(PydanticValidationError):
            settings.rpc_port = 1


class TestSerialization:
    """Document encoding in both formats."""

    def test_json_keys_are_field_names(self):
        data = json.loads(serialize(default_settings()))
        assert list(data) == list(SessionSettings.model_fields)
        assert data["encryption"] == "EncryptionPreferred"
        assert data["message_level"] == "Info"
        assert data["rpc_whitelist"] == ["127.0.0.1", "::1"]

    def test_json_round_trip(self):
        settings = default_settings().model_copy(
            update={"rpc_port": 9000, "encryption": EncryptionMode.ENCRYPTION_REQUIRED}
        )
        assert deserialize(serialize(settings)) == settings

    def test_toml_round_trip_omits_unset_dirs(self):
        settings = SessionSettings(watch_dir=None, ratio_limit=1.25)
        data = serialize(settings, "toml")

        assert "watch_dir" not in tomllib.loads(data.decode("utf-8"))
        assert deserialize(data, "toml") == settings

    @pytest.mark.parametrize(
        "text",
        ["x\x7fy", "\x01", "\x00nul", 'quote " and \\ backslash', "line\nbreak\ttab", "café ☃"],
        ids=["del", "soh", "nul", "quote-backslash", "whitespace", "non-ascii"],
    )
    @pytest.mark.parametrize("fmt", ["json", "toml"])
    def test_strings_survive_round_trip(self, text, fmt):
        settings = SessionSettings(
            rpc_password=text,
            rpc_username=text,
            rpc_url=text,
            peer_socket_tos=text,
            script_torrent_done_filename=text,
            watch_dir=Path(f"/srv/{text}"),
        )

        restored = deserialize(serialize(settings, fmt), fmt)

        assert restored == settings
        assert restored.rpc_password == text

    def test_unknown_format_rejected(self):
        with pytest.raises(MalformedDocumentError):
            serialize(default_settings(), "yaml")


class TestDeserializeErrors:
    """Mapping of validation failures onto schema errors."""

    def test_unknown_keys_ignored(self):
        settings = deserialize(_document(legacy_option=True))
        assert settings == default_settings()

    def test_missing_required_field(self):
        data = json.loads(_document())
        del data["rpc_port"]

        with pytest.raises(MissingFieldError) as exc_info:
            deserialize(json.dumps(data).encode())
        assert exc_info.value.field == "rpc_port"

    @pytest.mark.parametrize("field", ["download_dir", "incomplete_dir", "watch_dir"])
    def test_optional_dirs_may_be_absent(self, field):
        data = json.loads(_document())
        data.pop(field, None)

        assert getattr(deserialize(json.dumps(data).encode()), field) is None

    def test_unknown_variant(self):
        with pytest.raises(UnknownVariantError) as exc_info:
            deserialize(_document(encryption="Bogus"))
        assert exc_info.value.field == "encryption"
        assert exc_info.value.value == "Bogus"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("peer_port", 65536),
            ("rpc_port", -1),
            ("alt_speed_time_begin", 1440),
            ("alt_speed_time_day", 128),
            ("ratio_limit", -0.5),
            ("umask", 0o1000),
        ],
    )
    def test_out_of_range(self, field, value):
        with pytest.raises(OutOfRangeError) as exc_info:
            deserialize(_document(**{field: value}))
        assert exc_info.value.field == field
        assert exc_info.value.value == value

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("rpc_port", "abc"),
            ("rpc_whitelist", ["127.0.0.1", "bad-ip"]),
            ("bind_address_ipv4", "::1"),
            ("blocklist_url", "not a url"),
        ],
    )
    def test_invalid_value(self, field, value):
        with pytest.raises(InvalidValueError) as exc_info:
            deserialize(_document(**{field: value}))
        assert exc_info.value.field == field

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("rpc_port", True),
            ("rpc_port", "9091"),
            ("rpc_port", 9091.0),
            ("dht_enabled", "yes"),
            ("dht_enabled", 1),
            ("ratio_limit", "2.0"),
            ("ratio_limit", False),
        ],
    )
    def test_scalar_types_not_coerced(self, field, value):
        with pytest.raises(InvalidValueError) as exc_info:
            deserialize(_document(**{field: value}))
        assert exc_info.value.field == field
        assert exc_info.value.value == value

    def test_integer_ratio_accepted(self):
        assert deserialize(_document(ratio_limit=3)).ratio_limit == 3.0

    def test_first_violation_in_declaration_order(self):
        with pytest.raises(OutOfRangeError) as exc_info:
            deserialize(_document(rpc_port=70000, cache_size_mb=-1))
        assert exc_info.value.field == "cache_size_mb"

    @pytest.mark.parametrize(
        "data",
        [b"{not json", b"[1, 2, 3]", b"\xff\xfe"],
        ids=["syntax", "not-a-mapping", "not-utf8"],
    )
    def test_malformed_document(self, data):
        with pytest.raises(MalformedDocumentError):
            deserialize(data)

    def test_errors_share_schema_base(self):
        with pytest.raises(SchemaError, match="encryption"):
            deserialize(_document(encryption="Bogus"))


class TestLoadAndSave:
    """Settings file discovery and atomic writes."""

    def test_load_without_config_dir(self):
        assert load_settings(None) == default_settings()

    def test_load_without_file(self, config_dir):
        assert load_settings(config_dir) == default_settings()

    def test_load_json(self, config_dir):
        (config_dir / "settings.json").write_bytes(_document(rpc_port=1234))
        assert load_settings(config_dir).rpc_port == 1234

    def test_load_toml(self, config_dir):
        settings = SessionSettings(peer_port=6881)
        (config_dir / "settings.toml").write_bytes(serialize(settings, "toml"))

        assert load_settings(config_dir) == settings

    def test_json_preferred_over_toml(self, config_dir):
        (config_dir / "settings.json").write_bytes(_document(rpc_port=1111))
        (config_dir / "settings.toml").write_bytes(
            serialize(SessionSettings(rpc_port=2222), "toml")
        )

        assert find_settings_file(config_dir) == (config_dir / "settings.json", "json")
        assert load_settings(config_dir).rpc_port == 1111

    def test_invalid_file_raises(self, config_dir):
        (config_dir / "settings.json").write_bytes(_document(peer_port=65536))
        with pytest.raises(OutOfRangeError):
            load_settings(config_dir)

    def test_save_creates_directory(self, tmp_path):
        target_dir = tmp_path / "nested" / "config"
        path = save_settings(default_settings(), target_dir)

        assert path == target_dir / "settings.json"
        assert deserialize(path.read_bytes()) == default_settings()

    def test_save_leaves_no_temp_files(self, config_dir):
        save_settings(default_settings(), config_dir)
        save_settings(SessionSettings(rpc_port=1), config_dir)

        assert [p.name for p in config_dir.iterdir()] == ["settings.json"]
        assert load_settings(config_dir).rpc_port == 1

    def test_failed_save_keeps_previous_document(self, config_dir, monkeypatch):
        save_settings(SessionSettings(rpc_port=1), config_dir)

        def fail_replace(self, target):
            raise OSError("disk full")

        monkeypatch.setattr(Path, "replace", fail_replace)
        with pytest.raises(OSError, match="disk full"):
            save_settings(SessionSettings(rpc_port=2), config_dir)

        assert [p.name for p in config_dir.iterdir()] == ["settings.json"]
        assert load_settings(config_dir).rpc_port == 1

    def test_save_toml(self, config_dir):
        path = save_settings(SessionSettings(rpc_port=7), config_dir, "toml")
        assert path.name == "settings.toml"
        assert load_settings(config_dir).rpc_port == 7

    def test_save_keeps_existing_format(self, config_dir):
        (config_dir / "settings.toml").write_bytes(serialize(SessionSettings(), "toml"))

        path = save_settings(SessionSettings(rpc_port=8), config_dir)

        assert path == config_dir / "settings.toml"
        assert not (config_dir / "settings.json").exists()
        assert load_settings(config_dir).rpc_port == 8


def test_settings_schema_lists_every_field():
    schema = settings_schema()
    assert set(schema["properties"]) == set(SessionSettings.model_fields)
    assert schema["properties"]["rpc_port"]["maximum"] == 65535
