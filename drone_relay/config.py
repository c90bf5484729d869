"""
Configuration management for the drone relay service.

Configuration is loaded from an optional config.yaml file and then
overridden by process environment variables (a .env file is honoured).
"""

import os
from dataclasses import dataclass
from typing import Optional

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError


# Environment variable -> (field name, type)
ENV_OVERRIDES = {
    'CHAT_SOURCE': ('chat_source', str),
    'DISCORD_TOKEN': ('chat_token', str),
    'CHAT_TOKEN': ('chat_token', str),
    'DRONE_IP': ('drone_ip', str),
    'DRONE_PORT': ('drone_port', int),
    'DRONE_LOCAL_PORT': ('local_port', int),
    'LOG_LEVEL': ('log_level', str),
    'LOG_FILE': ('log_file', str),
}


@dataclass
class RelayConfig:
    """
    Configuration for the drone relay service.
    """

    # Chat
    chat_source: str = "discord"
    chat_token: str = ""

    # Vehicle
    vehicle_driver: str = "tello"
    drone_ip: str = "192.168.10.1"
    drone_port: int = 8889
    local_port: int = 8889
    response_timeout: float = 7.0

    # Relay
    gate_until_ready: bool = True
    poll_interval: float = 0.1

    # Logging
    log_level: str = "INFO"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    log_file: Optional[str] = None

    # Telemetry - InfluxDB
    telemetry_enabled: bool = False
    influxdb_host: str = "localhost:8086"
    influxdb_database: str = "drone_telemetry"
    influxdb_token: str = ""
    telemetry_flush_interval: float = 2.0

    def validate(self):
        """
        Validate configuration values.

        The chat token and drone address are not checked here;
        the collaborators report them on first use.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not (1 <= self.drone_port <= 65535):
            raise ConfigurationError(f"Invalid drone_port: {self.drone_port}")
        if not (0 <= self.local_port <= 65535):
            raise ConfigurationError(f"Invalid local_port: {self.local_port}")

        if self.response_timeout <= 0:
            raise ConfigurationError(f"Invalid response_timeout: {self.response_timeout}")
        if self.poll_interval <= 0:
            raise ConfigurationError(f"Invalid poll_interval: {self.poll_interval}")

        valid_levels = ['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']
        if self.log_level.upper() not in valid_levels:
            raise ConfigurationError(f"Invalid log_level: {self.log_level}. Must be one of {valid_levels}")

        valid_drivers = ['tello']
        if self.vehicle_driver not in valid_drivers:
            raise ConfigurationError(
                f"Invalid vehicle_driver: {self.vehicle_driver}. Must be one of {valid_drivers}"
            )

        valid_sources = ['discord', 'console']
        if self.chat_source not in valid_sources:
            raise ConfigurationError(
                f"Invalid chat_source: {self.chat_source}. Must be one of {valid_sources}"
            )

    @classmethod
    def from_yaml(cls, path: str) -> 'RelayConfig':
        """
        Load configuration from YAML file.

        Args:
            path: Path to YAML config file

        Returns:
            RelayConfig instance

        Raises:
            ConfigurationError: If file cannot be loaded or parsed
        """
        try:
            with open(path, 'r') as f:
                data = yaml.safe_load(f)
        except FileNotFoundError:
            raise ConfigurationError(f"Config file not found: {path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Failed to parse YAML config: {e}")
        except OSError as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config file {path} must contain a mapping")

        config_dict = {}

        chat = data.get('chat') or {}
        if 'source' in chat:
            config_dict['chat_source'] = chat['source']
        if 'token' in chat:
            config_dict['chat_token'] = chat['token']

        vehicle = data.get('vehicle') or {}
        if 'driver' in vehicle:
            config_dict['vehicle_driver'] = vehicle['driver']
        if 'ip' in vehicle:
            config_dict['drone_ip'] = vehicle['ip']
        if 'port' in vehicle:
            config_dict['drone_port'] = vehicle['port']
        if 'local_port' in vehicle:
            config_dict['local_port'] = vehicle['local_port']
        if 'response_timeout' in vehicle:
            config_dict['response_timeout'] = vehicle['response_timeout']

        relay = data.get('relay') or {}
        if 'gate_until_ready' in relay:
            config_dict['gate_until_ready'] = relay['gate_until_ready']
        if 'poll_interval' in relay:
            config_dict['poll_interval'] = relay['poll_interval']

        logging_section = data.get('logging') or {}
        config_dict['log_level'] = logging_section.get('level', cls.log_level)
        config_dict['log_format'] = logging_section.get('format', cls.log_format)
        config_dict['log_file'] = logging_section.get('file', cls.log_file)

        telemetry = data.get('telemetry') or {}
        config_dict['telemetry_enabled'] = telemetry.get('enabled', cls.telemetry_enabled)
        config_dict['influxdb_host'] = telemetry.get('influxdb_host', cls.influxdb_host)
        config_dict['influxdb_database'] = telemetry.get('influxdb_database', cls.influxdb_database)
        config_dict['influxdb_token'] = telemetry.get('influxdb_token', cls.influxdb_token)
        config_dict['telemetry_flush_interval'] = telemetry.get(
            'flush_interval', cls.telemetry_flush_interval
        )

        try:
            return cls(**config_dict)
        except TypeError as e:
            raise ConfigurationError(f"Failed to load config from {path}: {e}")

    def apply_environment(self, environ=None) -> 'RelayConfig':
        """
        Override fields from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Returns:
            self, for chaining

        Raises:
            ConfigurationError: If a numeric variable cannot be parsed
        """
        environ = os.environ if environ is None else environ

        for name, (field_name, field_type) in ENV_OVERRIDES.items():
            value = environ.get(name)
            if value is None or value == "":
                continue
            try:
                setattr(self, field_name, field_type(value))
            except ValueError:
                raise ConfigurationError(f"Invalid value for {name}: {value!r}")

        return self

    def __str__(self) -> str:
        """String representation for logging. The chat token is never printed."""
        return (
            f"RelayConfig("
            f"chat={self.chat_source} (token={'set' if self.chat_token else 'unset'}), "
            f"vehicle={self.vehicle_driver}@{self.drone_ip}:{self.drone_port}, "
            f"gate_until_ready={self.gate_until_ready}, "
            f"log_level={self.log_level})"
        )


def load_configuration(config_path: str = "drone_relay/config.yaml") -> RelayConfig:
    """
    Load configuration from YAML file and environment.

    A missing config file is not an error: defaults are used and the
    environment still applies.

    Args:
        config_path: Path to config.yaml file (default: drone_relay/config.yaml)

    Returns:
        Validated RelayConfig

    Raises:
        ConfigurationError: If configuration is invalid
    """
    load_dotenv()

    if not os.path.isabs(config_path) and not os.path.exists(config_path):
        # Fall back to the copy shipped next to this module
        script_dir = os.path.dirname(os.path.abspath(__file__))
        config_path = os.path.join(script_dir, "config.yaml")

    if os.path.exists(config_path):
        config = RelayConfig.from_yaml(config_path)
    else:
        config = RelayConfig()

    config.apply_environment()
    config.validate()

    return config
