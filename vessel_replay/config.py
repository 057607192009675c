"""
Configuration models and YAML I/O for vessel-replay.

This module defines the Pydantic models that map 1:1 to collectors.yaml,
plus helper functions for loading, saving and environment overrides.

Key models:
- ReplayConfig: Top-level config (transport + collectors + simulator).
- TransportConfig: Broker address, client identity and the fixed topics.
- CollectorConfig: One replayed dataset (files, kind, pacing override).
- SimulatorConfig: Leaf-device simulator settings.

Key functions:
- load_config(path) -> ReplayConfig: Load and validate from YAML.
- save_config(config, path): Serialize to YAML.
- apply_env_overrides(config, environ) -> ReplayConfig: Apply
  DEVICE_CONNECTION_STRING / MESSAGE_COUNT.

Why Pydantic + YAML:
- Pydantic gives us strict validation, type coercion, and clear error messages.
- YAML is human-editable (operators add collectors by hand on the edge box).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Literal, Mapping

import yaml
from pydantic import BaseModel, Field, model_validator

from vessel_replay.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

CONNECTION_STRING_ENV = "DEVICE_CONNECTION_STRING"
MESSAGE_COUNT_ENV = "MESSAGE_COUNT"


class TransportConfig(BaseModel):
    """Connection to the telemetry broker."""

    host: str = Field("localhost", description="Broker host name")
    port: int = Field(1883, description="Broker port")
    client_id: str = Field("vessel-replay", description="MQTT client id")
    keepalive: int = Field(60, description="Keepalive in seconds")
    qos: Literal[0, 1, 2] = 0
    username: str | None = None
    password: str | None = None
    output_topic: str = Field("output1", description="Topic every envelope is published to")
    input_topic: str | None = Field(
        "input1", description="Relay input topic; null disables the relay"
    )


class CollectorConfig(BaseModel):
    """One dataset replayed as telemetry."""

    name: str = Field(..., description="Collector name (envelope 'Collector' value)")
    kind: Literal["rows", "sectioned", "markup", "auto"] = "auto"
    data_file: str = Field(..., description="Path to the dataset file")
    map_file: str | None = Field(None, description="Tag mapping file (rows only)")
    device_id: str | None = Field(None, description="Device id (markup only)")
    collector_type: str | None = Field(
        None, description="Override the layout's CollectorType"
    )
    interval: float | None = Field(
        None, gt=0, description="Override the layout's pacing delay (seconds)"
    )
    layout: str | None = Field(None, description="Layout format_name override")
    enabled: bool = True

    @model_validator(mode="after")
    def _check_kind_requirements(self) -> CollectorConfig:
        # kind: auto is checked by the runner once the layout is detected.
        if self.kind == "rows" and not self.map_file:
            raise ValueError(f"Collector '{self.name}': kind 'rows' requires map_file")
        if self.kind == "markup" and not self.device_id:
            raise ValueError(f"Collector '{self.name}': kind 'markup' requires device_id")
        return self


class SimulatorConfig(BaseModel):
    """Leaf-device simulator settings."""

    connection_string: str | None = None
    message_count: int = Field(10, ge=0)
    message_interval: float = Field(5.0, ge=0)
    batch_pause: float = Field(300.0, ge=0)


class ReplayConfig(BaseModel):
    """Top-level configuration for vessel-replay.

    Maps 1:1 to collectors.yaml.
    """

    transport: TransportConfig = Field(default_factory=TransportConfig)
    collectors: list[CollectorConfig] = Field(default_factory=list)
    simulator: SimulatorConfig = Field(default_factory=SimulatorConfig)
    timestamp_format: str = Field(
        "%Y-%m-%dT%H:%M:%S", description="strftime pattern for DateTime"
    )

    @model_validator(mode="after")
    def _check_unique_names(self) -> ReplayConfig:
        seen: set[str] = set()
        for collector in self.collectors:
            if collector.name in seen:
                raise ValueError(f"Duplicate collector name: '{collector.name}'")
            seen.add(collector.name)
        return self

    def enabled_collectors(self) -> list[CollectorConfig]:
        return [c for c in self.collectors if c.enabled]


def _resolve_paths(config: ReplayConfig, base_dir: Path) -> None:
    """Make relative dataset paths relative to the config file."""
    for collector in config.collectors:
        collector.data_file = str(base_dir / collector.data_file)
        if collector.map_file:
            collector.map_file = str(base_dir / collector.map_file)


def load_config(path: str | Path, resolve_paths: bool = True) -> ReplayConfig:
    """Load and validate collectors.yaml into a ReplayConfig model.

    Args:
        path: Path to the YAML file.
        resolve_paths: If True, relative ``data_file``/``map_file`` entries
            are resolved against the config file's directory.

    Raises:
        FileNotFoundError: If the config file does not exist.
        ConfigValidationError: If the file is empty.
        pydantic.ValidationError: If the YAML content fails schema validation.
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f)
    if raw is None:
        raise ConfigValidationError(f"Config file is empty: {path}")
    config = ReplayConfig.model_validate(raw)
    if resolve_paths:
        _resolve_paths(config, path.parent)
    logger.info("Loaded config from %s (%d collector(s))", path, len(config.collectors))
    return config


def save_config(config: ReplayConfig, path: str | Path) -> None:
    """Serialize a ReplayConfig to YAML with a header comment."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    data = config.model_dump(mode="json")
    with open(path, "w", encoding="utf-8") as f:
        f.write("# vessel-replay configuration\n")
        f.write("# One entry under 'collectors' per replayed dataset.\n\n")
        yaml.dump(
            data,
            f,
            allow_unicode=True,
            default_flow_style=False,
            sort_keys=False,
        )
    logger.info("Saved config to %s", path)


def apply_env_overrides(
    config: ReplayConfig,
    environ: Mapping[str, str] | None = None,
) -> ReplayConfig:
    """Return a copy of *config* with environment overrides applied.

    ``DEVICE_CONNECTION_STRING`` replaces the simulator connection string.
    ``MESSAGE_COUNT`` replaces the simulator message count; a value that is
    not a non-negative integer is logged and ignored.
    """
    environ = os.environ if environ is None else environ
    simulator = config.simulator.model_copy()

    connection_string = environ.get(CONNECTION_STRING_ENV)
    if connection_string:
        simulator.connection_string = connection_string

    raw_count = environ.get(MESSAGE_COUNT_ENV, "")
    if raw_count.strip():
        try:
            count = int(raw_count)
            if count < 0:
                raise ValueError(raw_count)
            simulator.message_count = count
        except ValueError:
            logger.warning(
                "Invalid number of messages in env variable %s. %s set to %d",
                MESSAGE_COUNT_ENV, MESSAGE_COUNT_ENV, simulator.message_count,
            )

    return config.model_copy(update={"simulator": simulator})
