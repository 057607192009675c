"""
Unit tests for the leaf-device simulator (vessel_replay.simulator).
"""

import asyncio
import json

import pytest

from tests.conftest import FIXED_NOW, FailingPublisher, SleepRecorder
from vessel_replay.capture import RecordingPublisher
from vessel_replay.config import SimulatorConfig
from vessel_replay.exceptions import ConfigValidationError
from vessel_replay.simulator import CHANNEL_SEEDS, LeafSimulator, parse_connection_string


class TestParseConnectionString:

    def test_standard_fields(self):
        info = parse_connection_string("HostName=hub.local;DeviceId=leaf1;SharedAccessKey=abc=")
        assert info.host == "hub.local"
        assert info.device_id == "leaf1"
        assert info.port is None
        assert info.topic == "devices/leaf1/messages/events/"

    def test_case_insensitive_keys_and_port(self):
        info = parse_connection_string("hostname=h;deviceid=d;port=8883")
        assert (info.host, info.device_id, info.port) == ("h", "d", 8883)

    def test_missing_device_raises(self):
        with pytest.raises(ConfigValidationError, match="deviceid"):
            parse_connection_string("HostName=h;SharedAccessKey=k")


class TestLeafSimulator:

    def _simulator(self, publisher, count=3):
        return LeafSimulator(
            publisher,
            "devices/leaf1/messages/events/",
            SimulatorConfig(message_count=count),
            clock=lambda: FIXED_NOW,
            sleep=SleepRecorder(),
        )

    def test_batches_and_pauses(self):
        publisher = RecordingPublisher()
        simulator = self._simulator(publisher)
        asyncio.run(simulator.run(max_batches=2))
        assert len(publisher.messages) == 6
        assert simulator._sleep.calls == [5, 5, 5, 300, 5, 5, 5, 300]

    def test_message_shape(self):
        publisher = RecordingPublisher()
        asyncio.run(self._simulator(publisher, count=1).run_batch())
        topic, payload = publisher.messages[0]
        message = json.loads(payload)
        assert topic == "devices/leaf1/messages/events/"
        assert message["CollectorType"] == "VesselAdapter"
        assert message["Time"] == "2024-05-01T12:30:00"
        assert set(message) == {"CollectorType", "Time", *CHANNEL_SEEDS}
        assert all(0 <= message[name] < 100 for name in CHANNEL_SEEDS)

    def test_readings_are_reproducible(self):
        first = self._simulator(RecordingPublisher()).next_reading()
        second = self._simulator(RecordingPublisher()).next_reading()
        assert first == second

    def test_publish_failure_does_not_stop_batch(self, caplog):
        simulator = self._simulator(FailingPublisher())
        assert asyncio.run(simulator.run_batch()) == 0
        assert simulator.failed == 3
        assert simulator._sleep.calls == [5, 5, 5]
        assert "broker unreachable" in caplog.text

    def test_zero_messages(self):
        publisher = RecordingPublisher()
        asyncio.run(self._simulator(publisher, count=0).run(max_batches=1))
        assert publisher.messages == []
