"""Configuration loading for the packet fixer."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

from mcpacketfix.normalizer import NormalizationOptions

CONFIG_DIR = Path.home() / ".config" / "mcpacketfix"
CONFIG_FILE = CONFIG_DIR / "config.toml"
HISTORY_FILE = CONFIG_DIR / "history"
DATA_DIR = CONFIG_DIR / "data"

DEFAULT_AUDIT_FILE = "handled-errors.xml"


class ConfigError(Exception):
    """Raised when a config value has the wrong type."""


@dataclass(frozen=True)
class NormalizationConfig:
    """Hover event UUID normalization settings."""

    enabled: bool = True
    convert_int_array: bool = True
    convert_uuid_object: bool = True

    def options(self) -> NormalizationOptions:
        """Return the normalizer options for these settings."""
        return NormalizationOptions(
            convert_int_array=self.convert_int_array,
            convert_uuid_object=self.convert_uuid_object,
        )


@dataclass(frozen=True)
class SanitizationConfig:
    """Dig packet sanitization settings."""

    prevent_unloaded_chunk_dig: bool = True


@dataclass(frozen=True)
class AuditLogConfig:
    """Settings for the handled-errors XML log."""

    enabled: bool = True
    file: str = DEFAULT_AUDIT_FILE
    include_original_payload: bool = True
    include_normalized_payload: bool = True

    @property
    def active(self) -> bool:
        """Whether anything would actually be written."""
        return self.enabled and (
            self.include_original_payload or self.include_normalized_payload
        )


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    enabled: bool = True
    debug: bool = False
    normalization: NormalizationConfig = field(default_factory=NormalizationConfig)
    sanitization: SanitizationConfig = field(default_factory=SanitizationConfig)
    audit_log: AuditLogConfig = field(default_factory=AuditLogConfig)


def load_config(path: Path = CONFIG_FILE) -> AppConfig:
    """Load and parse the configuration file.

    Returns defaults if no config file exists. Missing keys fall back to
    their defaults individually.

    Raises:
        tomllib.TOMLDecodeError: If the file is not valid TOML.
        ConfigError: If a value has the wrong type.
    """
    if not path.exists():
        return AppConfig()

    with path.open("rb") as f:
        raw = tomllib.load(f)

    hover = raw.get("normalization", {}).get("hover_event_uuid", {})
    convert = hover.get("convert", {})
    sanitization = raw.get("sanitization", {})
    handled_errors = raw.get("logging", {}).get("handled_errors", {})

    return AppConfig(
        enabled=raw.get("enabled", True),
        debug=raw.get("debug", False),
        normalization=NormalizationConfig(
            enabled=hover.get("enabled", True),
            convert_int_array=convert.get("int_array", True),
            convert_uuid_object=convert.get("uuid_object", True),
        ),
        sanitization=SanitizationConfig(
            prevent_unloaded_chunk_dig=sanitization.get(
                "prevent_unloaded_chunk_dig", True
            ),
        ),
        audit_log=_parse_audit_log(handled_errors),
    )


def _parse_audit_log(raw: dict) -> AuditLogConfig:
    """Parse the [logging.handled_errors] section."""
    file_name = raw.get("file") or DEFAULT_AUDIT_FILE
    if not isinstance(file_name, str):
        msg = f"logging.handled_errors.file must be a string, got {file_name!r}"
        raise ConfigError(msg)
    return AuditLogConfig(
        enabled=raw.get("enabled", True),
        file=file_name.strip() or DEFAULT_AUDIT_FILE,
        include_original_payload=raw.get("include_original_payload", True),
        include_normalized_payload=raw.get("include_normalized_payload", True),
    )


def ensure_config_dir() -> None:
    """Create the config and data directories if they do not exist."""
    CONFIG_DIR.mkdir(parents=True, exist_ok=True)
    DATA_DIR.mkdir(parents=True, exist_ok=True)
