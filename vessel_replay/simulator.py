"""
Leaf-device simulator.

Stands in for a downstream field device in test environments: publishes
batches of synthetic readings to the broker so the relay and the sinks
have live traffic next to the replayed datasets.

Each message is::

    {"CollectorType": "VesselAdapter", "Time": "...",
     "I2CPressure": 42, "I2CTemperature": 7, ...}

Every channel draws integers in [0, 100) from its own seeded generator, so
a run is reproducible. A batch of ``message_count`` messages is sent with
``message_interval`` seconds between messages, followed by a
``batch_pause``; this repeats forever (or ``max_batches`` times). A failure
to publish one message is logged and the batch continues.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable

import numpy as np

from vessel_replay.config import SimulatorConfig
from vessel_replay.emitter import Publisher
from vessel_replay.exceptions import ConfigValidationError

logger = logging.getLogger(__name__)

# Channel name -> generator seed
CHANNEL_SEEDS: dict[str, int] = {
    "I2CPressure": 10,
    "I2CTemperature": 20,
    "Conductivity1": 30,
    "Conductivity2": 40,
    "Flow": 50,
    "Pressure1": 60,
    "Pressure2": 70,
}


@dataclass(frozen=True)
class ConnectionInfo:
    """Fields of a device connection string the simulator needs."""
    host: str
    device_id: str
    port: int | None = None

    @property
    def topic(self) -> str:
        return f"devices/{self.device_id}/messages/events/"


def parse_connection_string(connection_string: str) -> ConnectionInfo:
    """Parse ``HostName=...;DeviceId=...;SharedAccessKey=...``.

    Keys are case-insensitive; ``Port`` is optional.

    Raises:
        ConfigValidationError: If HostName or DeviceId is missing.
    """
    parts: dict[str, str] = {}
    for item in connection_string.split(";"):
        if "=" not in item:
            continue
        key, value = item.split("=", 1)
        parts[key.strip().lower()] = value.strip()

    missing = [k for k in ("hostname", "deviceid") if not parts.get(k)]
    if missing:
        raise ConfigValidationError(
            f"Connection string is missing {', '.join(missing)}"
        )
    port = parts.get("port")
    return ConnectionInfo(
        host=parts["hostname"],
        device_id=parts["deviceid"],
        port=int(port) if port else None,
    )


class LeafSimulator:
    """Publishes batches of random readings."""

    def __init__(
        self,
        publisher: Publisher,
        topic: str,
        settings: SimulatorConfig | None = None,
        *,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
    ) -> None:
        self.publisher = publisher
        self.topic = topic
        self.settings = settings or SimulatorConfig()
        self._clock = clock
        self._sleep = sleep
        self._generators = {
            name: np.random.default_rng(seed) for name, seed in CHANNEL_SEEDS.items()
        }
        self.sent = 0
        self.failed = 0

    def next_reading(self) -> dict[str, object]:
        reading: dict[str, object] = {
            "CollectorType": "VesselAdapter",
            "Time": self._clock().isoformat(timespec="seconds"),
        }
        for name, rng in self._generators.items():
            reading[name] = int(rng.integers(0, 100))
        return reading

    async def run_batch(self) -> int:
        """Send one batch; returns the number of messages published."""
        published = 0
        for count in range(self.settings.message_count):
            try:
                reading = self.next_reading()
                payload = json.dumps(reading).encode("utf-8")
                logger.info("Leaf Device: Sending message: %d, Data: [%s]", count, payload.decode())
                await self.publisher.publish(self.topic, payload)
                published += 1
                self.sent += 1
            except Exception as exc:
                self.failed += 1
                logger.error("Leaf Device: failed with the following exception. %s", exc)
            await self._sleep(self.settings.message_interval)
        return published

    async def run(self, max_batches: int | None = None) -> None:
        logger.info(
            "Leaf Device: attempting to send %d messages per batch to %s",
            self.settings.message_count, self.topic,
        )
        batches = 0
        while max_batches is None or batches < max_batches:
            await self.run_batch()
            batches += 1
            await self._sleep(self.settings.batch_pause)
