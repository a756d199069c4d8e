# apbrowse/config.py
"""
Runtime settings.

Values come from, in increasing precedence: built-in defaults, an optional
YAML file, and command-line flags.

Example file:

    root_uri: https://example.test/users/alice
    preferred_username: alice
    name: Alice
    port: 9004
"""

from dataclasses import dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict

import yaml

from .errors import ConfigError
from .fetch import DEFAULT_TIMEOUT
from .server import DEFAULT_HOST, DEFAULT_PORT


@dataclass(frozen=True)
class Settings:
    """
    Attributes:
        root_uri: Actor URI; also the owner of the signing key
        preferred_username: Handle published in the actor document
        name: Display name published in the actor document
        key_path: PEM file holding the private key
        host: Interface the profile server listens on
        port: Port the profile server listens on
        timeout: Per-request fetch timeout in seconds
        log_file: Where log records go (the terminal belongs to the UI)
        serve: Whether to run the profile server while browsing
    """
    root_uri: str = ""
    preferred_username: str = ""
    name: str = ""
    key_path: Path = field(default_factory=lambda: Path("private_key.pem"))
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    timeout: float = DEFAULT_TIMEOUT
    log_file: Path = field(default_factory=lambda: Path("debug.log"))
    serve: bool = True

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        """Build settings from a mapping, validating keys and types."""
        return cls().merged(**data)

    @classmethod
    def from_yaml(cls, yaml_content: str) -> "Settings":
        try:
            data = yaml.safe_load(yaml_content)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML: {e}") from e

        if data is None:
            return cls()
        if not isinstance(data, dict):
            raise ConfigError("Config file must contain a mapping")
        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Path | str) -> "Settings":
        path = Path(path)
        try:
            with open(path) as f:
                return cls.from_yaml(f.read())
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e}") from e

    def merged(self, **overrides: Any) -> "Settings":
        """
        Return a copy with overrides applied.

        None values are ignored so unset command-line flags keep the
        current value.
        """
        known = {f.name: f for f in fields(self)}
        changes = {}
        for key, value in overrides.items():
            if key not in known:
                raise ConfigError(f"Unknown setting: {key}")
            if value is None:
                continue
            changes[key] = _coerce(key, value, getattr(self, key))
        return replace(self, **changes)


def _coerce(key: str, value: Any, current: Any) -> Any:
    """Convert value to the type of the setting's current value."""
    try:
        if isinstance(current, Path):
            return Path(value)
        if isinstance(current, bool):
            if not isinstance(value, bool):
                raise TypeError("expected true or false")
            return value
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
        return str(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {value!r} ({e})") from e
