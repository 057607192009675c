"""
Unit tests for config models and YAML I/O (vessel_replay.config).

Tests Pydantic model validation, YAML round-trip, relative path
resolution and the environment overrides.
"""

import logging

import pytest
from pydantic import ValidationError

from vessel_replay.config import (
    CollectorConfig,
    ReplayConfig,
    SimulatorConfig,
    TransportConfig,
    apply_env_overrides,
    load_config,
    save_config,
)
from vessel_replay.exceptions import ConfigValidationError

CONFIG_YAML = """\
transport:
  host: broker.local
  port: 1884
collectors:
  - name: Vessel1
    kind: rows
    data_file: data/vessel1.csv
    map_file: data/vessel1_map.csv
  - name: Vessel3
    kind: markup
    data_file: data/vessel3.html
    device_id: FoulingBench
    interval: 10
"""


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------

class TestModels:

    def test_defaults(self):
        config = ReplayConfig()
        assert config.transport.output_topic == "output1"
        assert config.transport.input_topic == "input1"
        assert config.simulator.message_count == 10
        assert config.timestamp_format == "%Y-%m-%dT%H:%M:%S"
        assert config.collectors == []

    def test_rows_requires_map_file(self):
        with pytest.raises(ValidationError, match="map_file"):
            CollectorConfig(name="V1", kind="rows", data_file="a.csv")

    def test_markup_requires_device_id(self):
        with pytest.raises(ValidationError, match="device_id"):
            CollectorConfig(name="V3", kind="markup", data_file="a.html")

    def test_auto_kind_needs_nothing_extra(self):
        assert CollectorConfig(name="V2", data_file="a.csv").kind == "auto"

    def test_interval_must_be_positive(self):
        with pytest.raises(ValidationError):
            CollectorConfig(name="V2", data_file="a.csv", interval=0)

    def test_unknown_kind_rejected(self):
        with pytest.raises(ValidationError):
            CollectorConfig(name="V2", kind="xml", data_file="a.csv")

    def test_duplicate_names_rejected(self):
        with pytest.raises(ValidationError, match="Duplicate collector name"):
            ReplayConfig(collectors=[
                CollectorConfig(name="V2", data_file="a.csv"),
                CollectorConfig(name="V2", data_file="b.csv"),
            ])

    def test_invalid_qos_rejected(self):
        with pytest.raises(ValidationError):
            TransportConfig(qos=3)

    def test_enabled_collectors(self):
        config = ReplayConfig(collectors=[
            CollectorConfig(name="A", data_file="a.csv"),
            CollectorConfig(name="B", data_file="b.csv", enabled=False),
        ])
        assert [c.name for c in config.enabled_collectors()] == ["A"]


# ---------------------------------------------------------------------------
# YAML I/O
# ---------------------------------------------------------------------------

class TestLoadSave:

    def test_load_resolves_relative_paths(self, tmp_path):
        path = tmp_path / "collectors.yaml"
        path.write_text(CONFIG_YAML, encoding="utf-8")
        config = load_config(path)

        assert config.transport.host == "broker.local"
        assert config.transport.port == 1884
        rows = config.collectors[0]
        assert rows.data_file == str(tmp_path / "data" / "vessel1.csv")
        assert rows.map_file == str(tmp_path / "data" / "vessel1_map.csv")
        assert config.collectors[1].interval == 10

    def test_load_without_resolving(self, tmp_path):
        path = tmp_path / "collectors.yaml"
        path.write_text(CONFIG_YAML, encoding="utf-8")
        config = load_config(path, resolve_paths=False)
        assert config.collectors[0].data_file == "data/vessel1.csv"

    def test_missing_file_raises(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_empty_file_raises(self, tmp_path):
        path = tmp_path / "collectors.yaml"
        path.write_text("", encoding="utf-8")
        with pytest.raises(ConfigValidationError, match="empty"):
            load_config(path)

    def test_round_trip(self, tmp_path):
        source = tmp_path / "collectors.yaml"
        source.write_text(CONFIG_YAML, encoding="utf-8")
        config = load_config(source, resolve_paths=False)

        target = tmp_path / "out" / "saved.yaml"
        save_config(config, target)
        assert target.read_text(encoding="utf-8").startswith("# vessel-replay configuration")
        assert load_config(target, resolve_paths=False) == config


# ---------------------------------------------------------------------------
# Environment overrides
# ---------------------------------------------------------------------------

class TestEnvOverrides:

    def test_connection_string_and_count(self):
        config = apply_env_overrides(ReplayConfig(), {
            "DEVICE_CONNECTION_STRING": "HostName=h;DeviceId=d;SharedAccessKey=k",
            "MESSAGE_COUNT": "3",
        })
        assert config.simulator.connection_string.startswith("HostName=h")
        assert config.simulator.message_count == 3

    def test_original_config_untouched(self):
        original = ReplayConfig()
        apply_env_overrides(original, {"MESSAGE_COUNT": "3"})
        assert original.simulator.message_count == 10

    @pytest.mark.parametrize("raw", ["ten", "-1", "2.5"])
    def test_invalid_count_keeps_default(self, raw, caplog):
        with caplog.at_level(logging.WARNING):
            config = apply_env_overrides(ReplayConfig(), {"MESSAGE_COUNT": raw})
        assert config.simulator.message_count == 10
        assert "MESSAGE_COUNT set to 10" in caplog.text

    def test_no_environment_no_change(self):
        config = ReplayConfig(simulator=SimulatorConfig(message_count=4))
        assert apply_env_overrides(config, {}).simulator.message_count == 4
