"""Tests for configuration loading."""

import os
from pathlib import Path

import pytest

from drone_relay.config import ENV_OVERRIDES, RelayConfig, load_configuration
from drone_relay.exceptions import ConfigurationError


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in ENV_OVERRIDES:
        monkeypatch.delenv(name, raising=False)


def test_defaults_are_valid():
    config = RelayConfig()
    config.validate()
    assert config.drone_ip == "192.168.10.1"
    assert config.drone_port == 8889
    assert config.gate_until_ready is True


def test_from_yaml_reads_sections(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text(
        "chat:\n"
        "  source: console\n"
        "  token: abc\n"
        "vehicle:\n"
        "  ip: 10.0.0.5\n"
        "  port: 9000\n"
        "  local_port: 0\n"
        "  response_timeout: 2.5\n"
        "relay:\n"
        "  gate_until_ready: false\n"
        "  poll_interval: 0.5\n"
        "logging:\n"
        "  level: DEBUG\n"
        "telemetry:\n"
        "  enabled: true\n"
        "  influxdb_database: flights\n",
        encoding="utf-8",
    )

    config = RelayConfig.from_yaml(str(path))

    assert config.chat_source == "console"
    assert config.chat_token == "abc"
    assert config.drone_ip == "10.0.0.5"
    assert config.drone_port == 9000
    assert config.local_port == 0
    assert config.response_timeout == 2.5
    assert config.gate_until_ready is False
    assert config.poll_interval == 0.5
    assert config.log_level == "DEBUG"
    assert config.telemetry_enabled is True
    assert config.influxdb_database == "flights"
    # Untouched values keep their defaults
    assert config.vehicle_driver == "tello"


def test_from_yaml_empty_file_gives_defaults(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("", encoding="utf-8")
    assert RelayConfig.from_yaml(str(path)) == RelayConfig()


def test_from_yaml_missing_file(tmp_path: Path):
    with pytest.raises(ConfigurationError):
        RelayConfig.from_yaml(str(tmp_path / "missing.yaml"))


def test_from_yaml_invalid_yaml(tmp_path: Path):
    path = tmp_path / "config.yaml"
    path.write_text("vehicle: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigurationError):
        RelayConfig.from_yaml(str(path))


def test_environment_overrides():
    config = RelayConfig(drone_port=1234).apply_environment(
        {"DRONE_PORT": "8890", "CHAT_TOKEN": "secret", "DRONE_IP": "127.0.0.1"}
    )
    assert config.drone_port == 8890
    assert config.chat_token == "secret"
    assert config.drone_ip == "127.0.0.1"


def test_discord_token_is_chat_token():
    config = RelayConfig().apply_environment({"DISCORD_TOKEN": "bot-token"})
    assert config.chat_token == "bot-token"


def test_environment_rejects_non_numeric_port():
    with pytest.raises(ConfigurationError):
        RelayConfig().apply_environment({"DRONE_PORT": "eighty"})


@pytest.mark.parametrize(
    "overrides",
    [
        {"drone_port": 0},
        {"drone_port": 70000},
        {"response_timeout": 0},
        {"poll_interval": -1},
        {"log_level": "LOUD"},
        {"vehicle_driver": "mavlink"},
        {"chat_source": "irc"},
    ],
)
def test_validate_rejects(overrides):
    with pytest.raises(ConfigurationError):
        RelayConfig(**overrides).validate()


def test_missing_token_is_not_validated():
    RelayConfig(chat_token="").validate()


def test_load_configuration_environment_beats_file(tmp_path: Path, monkeypatch):
    path = tmp_path / "config.yaml"
    path.write_text("vehicle:\n  port: 9000\n", encoding="utf-8")
    monkeypatch.setenv("DRONE_PORT", "9100")

    config = load_configuration(str(path))

    assert config.drone_port == 9100


def test_load_configuration_without_file(tmp_path: Path):
    config = load_configuration(os.path.join(str(tmp_path), "absent.yaml"))
    assert config == RelayConfig()


def test_str_hides_token():
    text = str(RelayConfig(chat_token="hunter2"))
    assert "hunter2" not in text
    assert "token=set" in text
