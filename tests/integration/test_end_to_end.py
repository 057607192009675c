"""
Integration tests: replay all three dataset formats through the public API.

A collectors.yaml with relative paths is written next to the sample
datasets; the run uses a RecordingPublisher and a bounded cycle count, so
no broker and no real waiting are involved.
"""

from __future__ import annotations

import asyncio

import pandas as pd
import pytest
import simplejson

import vessel_replay
from tests.conftest import (
    MARKUP_SAMPLE,
    ROWS_SAMPLE,
    SECTIONED_SAMPLE,
    TAG_MAP_SAMPLE,
    SleepRecorder,
    TickingClock,
)
from vessel_replay.capture import RecordingPublisher, export_capture
from vessel_replay.exceptions import CollectorFailedError

CONFIG_YAML = """\
collectors:
  - name: Vessel1
    kind: rows
    data_file: data/vessel1.csv
    map_file: data/vessel1_map.csv
  - name: Vessel2
    data_file: data/vessel2.csv
  - name: Vessel3
    kind: markup
    data_file: data/vessel3.html
    device_id: FoulingBench
  - name: Vessel4
    data_file: data/not_there.csv
"""


@pytest.fixture
def config_path(tmp_path, monkeypatch):
    monkeypatch.delenv("MESSAGE_COUNT", raising=False)
    monkeypatch.delenv("DEVICE_CONNECTION_STRING", raising=False)
    data = tmp_path / "data"
    data.mkdir()
    (data / "vessel1.csv").write_text(ROWS_SAMPLE, encoding="utf-8")
    (data / "vessel1_map.csv").write_text(TAG_MAP_SAMPLE, encoding="utf-8")
    (data / "vessel2.csv").write_text(SECTIONED_SAMPLE, encoding="utf-8")
    (data / "vessel3.html").write_text(MARKUP_SAMPLE, encoding="utf-8")
    path = tmp_path / "collectors.yaml"
    path.write_text(CONFIG_YAML, encoding="utf-8")
    return path


def _replay(config_path, cycles: int) -> RecordingPublisher:
    publisher = RecordingPublisher()
    config = vessel_replay.load(config_path)
    asyncio.run(
        vessel_replay.replay(
            config, publisher, max_cycles=cycles, sleep=SleepRecorder(), clock=TickingClock()
        )
    )
    return publisher


@pytest.mark.integration
class TestEndToEnd:

    def test_all_formats_published(self, config_path):
        publisher = _replay(config_path, cycles=2)

        assert {topic for topic, _ in publisher.messages} == {"output1"}
        envelopes = publisher.envelopes()
        by_type = {}
        for envelope in envelopes:
            by_type.setdefault(envelope["CollectorType"], []).append(envelope)

        assert len(by_type["Vessel1"]) == 2 * 4
        assert len(by_type["Vessel2"]) == 2 * 2
        assert len(by_type["Vessel3"]) == 2 * 1

    def test_envelope_contents(self, config_path):
        envelopes = _replay(config_path, cycles=1).envelopes()

        pump1 = next(e for e in envelopes if e.get("DeviceID") == "Pump1")
        assert pump1 == {
            "Collector": "Vessel1",
            "CollectorType": "Vessel1",
            "DeviceID": "Pump1",
            "DateTime": "2024-05-01T12:30:00",
            "Inlet_Temp": 23.5,
            "Inlet_Temp_UOM": "C",
            "Pressure": 1.2,
            "Pressure_UOM": "bar",
        }

        logger_env = next(e for e in envelopes if e["CollectorType"] == "Vessel2")
        assert logger_env["DeviceType"] == "LoggerX"
        assert logger_env["DeviceID"] == "SN-42"
        assert logger_env["Cond_1_UOM"] == "uS/cm"
        assert len(logger_env) == 5 + 3 * 2

        bench = next(e for e in envelopes if e["CollectorType"] == "Vessel3")
        assert bench["DeviceID"] == "FoulingBench"
        assert bench["Inlet_Temp"] == "41.2"
        assert bench["Flow_Rate_AlarmStatus2"] == "HI"
        assert "DeviceType" not in bench

    def test_payloads_are_compact_json(self, config_path):
        publisher = _replay(config_path, cycles=1)
        for _, payload in publisher.messages:
            assert payload == simplejson.dumps(
                simplejson.loads(payload, use_decimal=True),
                use_decimal=True,
                ensure_ascii=False,
                separators=(",", ":"),
            ).encode("utf-8")

    def test_exported_digits_are_kept(self, config_path):
        publisher = _replay(config_path, cycles=1)
        pump1 = next(p for _, p in publisher.messages if b'"DeviceID":"Pump1"' in p)
        assert b'"Pressure":1.20,' in pump1

    def test_capture_export(self, config_path, tmp_path):
        publisher = _replay(config_path, cycles=1)
        path = export_capture(publisher.envelopes(), tmp_path / "capture.parquet", "parquet")
        df = pd.read_parquet(path)
        assert len(df) == 4 + 2 + 1
        assert set(df["Collector"]) == {"Vessel1", "Vessel2", "Vessel3"}

    def test_fatal_collector_stops_process(self, config_path):
        (config_path.parent / "data" / "vessel1.csv").write_text("T1,T2,T3\nx,1,2\n", encoding="utf-8")
        with pytest.raises(CollectorFailedError):
            _replay(config_path, cycles=1)
