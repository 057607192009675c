"""
Emitter: hands encoded envelopes to the publish interface.

The transport is an external collaborator. Anything with an awaitable
``publish(topic, payload)`` satisfies the ``Publisher`` protocol: the MQTT
publisher in ``vessel_replay.transport`` in production, the
``RecordingPublisher`` in ``vessel_replay.capture`` for dry runs and tests.

Every record of a process goes to the same fixed topic. There is no retry
and no acknowledgement tracking; a transport failure is raised as
``PublishError`` and handled according to the owning collector's
resilience.
"""

from __future__ import annotations

import logging
from typing import Protocol

from vessel_replay.envelope import build_envelope, encode_envelope
from vessel_replay.exceptions import PublishError
from vessel_replay.records import TelemetryRecord

logger = logging.getLogger(__name__)

DEFAULT_TOPIC = "output1"


class Publisher(Protocol):
    """Minimal publish interface of a telemetry transport."""

    async def publish(self, topic: str, payload: bytes) -> None:
        ...


class Emitter:
    """Encodes records and publishes them to one fixed topic.

    Attributes:
        publisher: The transport.
        topic: Output topic for every message.
        sent: Number of messages handed to the transport so far.
    """

    def __init__(self, publisher: Publisher, topic: str = DEFAULT_TOPIC) -> None:
        self.publisher = publisher
        self.topic = topic
        self.sent = 0

    async def emit(self, record: TelemetryRecord) -> bytes:
        """Encode *record* and publish it.

        Returns:
            The payload that was published.

        Raises:
            EnvelopeError: If the record cannot be encoded.
            PublishError: If the transport fails.
        """
        payload = encode_envelope(build_envelope(record))
        logger.info(
            "Sending %s telemetry (device=%s, %d bytes)",
            record.collector_type, record.device_id, len(payload),
        )
        try:
            await self.publisher.publish(self.topic, payload)
        except PublishError:
            raise
        except Exception as exc:
            raise PublishError(
                f"Publishing to {self.topic!r} failed: {exc}"
            ) from exc
        self.sent += 1
        logger.debug("Payload: %s", payload)
        return payload
