"""
Configuration module for registry, telemetry and load settings.

This module provides configuration loading and validation for how a
documentation build aggregates implementor contributions.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .host import LoadOrder
from .registry import ImplementorRegistry
from .telemetry import TelemetryLevel, TelemetryRecorder

DEFAULT_CONFIG_PATH = Path(__file__).parents[3] / "config" / "registry.yml"


class ConfigValidationError(ValueError):
    """Raised when a configuration value is invalid."""


@dataclass
class RegistrySettings:
    """Settings for the registry service."""

    thread_safe: bool = True

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistrySettings":
        return cls(thread_safe=data.get("thread_safe", True))


@dataclass
class TelemetrySettings:
    """Settings for the telemetry recorder."""

    level: str = "info"
    format_json: bool = True
    collect_stats: bool = False

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "TelemetrySettings":
        return cls(
            level=data.get("level", "info"),
            format_json=data.get("format_json", True),
            collect_stats=data.get("collect_stats", False),
        )


@dataclass
class SourceConfig:
    """Configuration for one directory of implementor scripts."""

    root: str
    pattern: str = "trait.*.js"


@dataclass
class LoadSettings:
    """How contributor units are discovered and ordered."""

    order: str = "sorted"
    seed: int | None = None
    sources: list[SourceConfig] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LoadSettings":
        """Create LoadSettings from dictionary."""
        sources_data = data.get("sources") or []
        sources = []
        for i, source in enumerate(sources_data):
            if not isinstance(source, dict):
                raise ConfigValidationError(f"load.sources[{i}] must be a mapping")
            try:
                sources.append(SourceConfig(**source))
            except TypeError as e:
                raise ConfigValidationError(f"load.sources[{i}] is invalid: {e}") from e

        return cls(
            order=data.get("order", "sorted"),
            seed=data.get("seed"),
            sources=sources,
        )

    @property
    def load_order(self) -> LoadOrder:
        return LoadOrder(self.order)


@dataclass
class RegistryConfig:
    """Top-level configuration."""

    registry: RegistrySettings = field(default_factory=RegistrySettings)
    telemetry: TelemetrySettings = field(default_factory=TelemetrySettings)
    load: LoadSettings = field(default_factory=LoadSettings)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "RegistryConfig":
        """Create RegistryConfig from dictionary."""
        return cls(
            registry=RegistrySettings.from_dict(data.get("registry") or {}),
            telemetry=TelemetrySettings.from_dict(data.get("telemetry") or {}),
            load=LoadSettings.from_dict(data.get("load") or {}),
        )


def load_config(config_path: str | Path | None = None) -> RegistryConfig:
    """
    Load registry configuration from YAML file.

    Args:
        config_path: Path to config file. If None, uses default location.

    Returns:
        RegistryConfig, defaults where the file is silent

    Raises:
        yaml.YAMLError: If config file is invalid YAML
        ConfigValidationError: If config validation fails
    """
    config_path = DEFAULT_CONFIG_PATH if config_path is None else Path(config_path)

    if not config_path.exists():
        # Return default config if file doesn't exist
        return RegistryConfig()

    with open(config_path, "r") as f:
        data = yaml.safe_load(f)

    if not data:
        return RegistryConfig()

    if not isinstance(data, dict):
        raise ConfigValidationError(f"{config_path} must contain a mapping")

    config = RegistryConfig.from_dict(data)
    validate_config(config)
    return config


def validate_config(config: RegistryConfig) -> None:
    """
    Validate configuration.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If configuration is invalid
    """
    if not isinstance(config.registry.thread_safe, bool):
        raise ConfigValidationError("registry.thread_safe must be a boolean")

    levels = [level.value for level in TelemetryLevel]
    if config.telemetry.level not in levels:
        raise ConfigValidationError(
            f"telemetry.level must be one of {levels}, got {config.telemetry.level!r}"
        )

    orders = [order.value for order in LoadOrder]
    if config.load.order not in orders:
        raise ConfigValidationError(
            f"load.order must be one of {orders}, got {config.load.order!r}"
        )

    seed = config.load.seed
    if seed is not None and (isinstance(seed, bool) or not isinstance(seed, int)):
        raise ConfigValidationError(f"load.seed must be an integer, got {seed!r}")

    for i, source in enumerate(config.load.sources):
        if not source.root:
            raise ConfigValidationError(f"load.sources[{i}] must have a root")
        if not source.pattern:
            raise ConfigValidationError(f"load.sources[{i}] must have a pattern")


def build_recorder(config: RegistryConfig) -> TelemetryRecorder:
    """Create the telemetry recorder described by the config."""
    return TelemetryRecorder(
        level=TelemetryLevel(config.telemetry.level),
        format_json=config.telemetry.format_json,
        collect_stats=config.telemetry.collect_stats,
    )


def build_registry(
    config: RegistryConfig,
    recorder: TelemetryRecorder | None = None,
) -> ImplementorRegistry:
    """
    Create a registry (registrar absent) as the config describes.

    Args:
        config: Validated configuration
        recorder: Recorder to use; built from the config if None
    """
    return ImplementorRegistry(
        recorder=recorder or build_recorder(config),
        thread_safe=config.registry.thread_safe,
    )
