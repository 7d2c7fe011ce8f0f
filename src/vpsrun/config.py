"""Configuration loader for vpsrun."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

DEFAULT_CONFIG_PATH = Path("~/.config/vps/config.yaml").expanduser()


class ConfigError(ValueError):
    """Raised when the host-credential file is malformed."""


@dataclass
class Defaults:
    """Default values that can be overridden per host."""

    username: str | None = None
    port: int = 22
    known_hosts: Path | None = None  # None accepts any remote host key


@dataclass(frozen=True)
class HostRecord:
    """Connection details for a single host."""

    address: str
    username: str
    credential: str = field(repr=False)
    name: str | None = None
    port: int = 22

    @property
    def label(self) -> str:
        """Identifier shown in reports."""
        return self.name or self.address


@dataclass
class Config:
    """Main configuration for the runner."""

    hosts: list[HostRecord]
    defaults: Defaults = field(default_factory=Defaults)
    source_path: Path | None = None  # Path to the original config file


def load_config(config_path: str | Path = DEFAULT_CONFIG_PATH) -> Config:
    """Load and validate configuration from a YAML file."""
    config_path = Path(config_path).expanduser().resolve()

    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path) as f:
        try:
            raw = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"failed to parse config: {e}") from e

    config = _parse_config(raw)
    config.source_path = config_path
    return config


def _parse_defaults(raw: dict[str, Any]) -> Defaults:
    """Parse the defaults section."""
    defaults_raw = raw.get("defaults") or {}
    if not isinstance(defaults_raw, dict):
        raise ConfigError("'defaults' must be a mapping")

    known_hosts = defaults_raw.get("known_hosts")
    return Defaults(
        username=defaults_raw.get("username"),
        port=_parse_port(defaults_raw.get("port", 22), "defaults"),
        known_hosts=Path(known_hosts).expanduser() if known_hosts else None,
    )


def _parse_config(raw: Any) -> Config:
    """Parse raw YAML data into Config object.

    Accepts either a bare list of host entries or a mapping holding
    them under ``credentials``.
    """
    if isinstance(raw, list):
        hosts_raw = raw
        defaults = Defaults()
    elif isinstance(raw, dict):
        hosts_raw = raw.get("credentials") or []
        defaults = _parse_defaults(raw)
    elif raw is None:
        hosts_raw = []
        defaults = Defaults()
    else:
        raise ConfigError("config must be a list of hosts or a mapping with 'credentials'")

    if not isinstance(hosts_raw, list):
        raise ConfigError("'credentials' must be a list of host entries")
    if not hosts_raw:
        raise ConfigError("config file contains no host entries")

    hosts = [
        _parse_host(host_raw, position, defaults)
        for position, host_raw in enumerate(hosts_raw, start=1)
    ]
    return Config(hosts=hosts, defaults=defaults)


def _parse_host(host_raw: Any, position: int, defaults: Defaults) -> HostRecord:
    """Parse a single host entry. ``position`` is 1-based."""
    if not isinstance(host_raw, dict):
        raise ConfigError(f"host entry {position}: expected a mapping")

    address = host_raw.get("ip") or host_raw.get("address")
    if not address:
        raise ConfigError(f"host entry {position}: ip is required")

    username = host_raw.get("username", defaults.username)
    if not username:
        raise ConfigError(f"host entry {position}: username is required")

    password = host_raw.get("password")
    if not password:
        raise ConfigError(f"host entry {position}: password is required")

    name = host_raw.get("name")
    return HostRecord(
        name=str(name) if name is not None else None,
        address=str(address),
        username=str(username),
        credential=str(password),
        port=_parse_port(host_raw.get("port", defaults.port), f"host entry {position}"),
    )


def _parse_port(value: Any, where: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or not 0 < value < 65536:
        raise ConfigError(f"{where}: port must be an integer between 1 and 65535")
    return value
