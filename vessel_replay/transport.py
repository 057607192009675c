"""
Broker transport and inbound message relay.

``MqttPublisher`` wraps a paho-mqtt v2 client: it connects once at start-up,
runs paho's network loop in its background thread and exposes the
``publish(topic, payload)`` coroutine the emitter expects. Publishing only
queues the message with paho; delivery is not awaited or retried.

``MessageRelay`` forwards every inbound message, unmodified and with its
properties, to the output topic and counts it. Messages arrive on paho's
network thread while the replay loops run on the event loop, so the
counter is guarded by a lock; ``handle()`` also returns the sequence
number it assigned.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import paho.mqtt.client as mqtt

from vessel_replay.config import TransportConfig
from vessel_replay.exceptions import PublishError

logger = logging.getLogger(__name__)

Forward = Callable[[str, bytes, Any], None]


class MessageRelay:
    """Pipes inbound messages to the output topic without changing them."""

    def __init__(self, forward: Forward, output_topic: str) -> None:
        self._forward = forward
        self.output_topic = output_topic
        self._lock = threading.Lock()
        self._count = 0

    @property
    def count(self) -> int:
        with self._lock:
            return self._count

    def handle(self, payload: bytes, properties: Any = None) -> int:
        """Count, log and forward one inbound message.

        Empty payloads are counted and logged but not forwarded.

        Returns:
            The message's sequence number (1-based).
        """
        with self._lock:
            self._count += 1
            sequence = self._count

        body = payload.decode("utf-8", errors="replace")
        logger.info("Received message: %d, Body: [%s]", sequence, body)
        if body:
            self._forward(self.output_topic, payload, properties)
            logger.info("Received message sent")
        return sequence


class MqttPublisher:
    """Connection-oriented publish session on an MQTT broker."""

    def __init__(self, settings: TransportConfig, client: Any = None) -> None:
        self.settings = settings
        if client is None:
            client = mqtt.Client(
                callback_api_version=mqtt.CallbackAPIVersion.VERSION2,
                client_id=settings.client_id,
            )
        self._client = client
        if settings.username:
            self._client.username_pw_set(settings.username, settings.password)
        self.relay: MessageRelay | None = None
        self._client.on_connect = self._on_connect
        self._client.on_message = self._on_message

    def connect(self) -> None:
        """Open the session and start paho's network thread."""
        s = self.settings
        logger.info("Connecting to MQTT broker %s:%d", s.host, s.port)
        try:
            self._client.connect(s.host, s.port, keepalive=s.keepalive)
        except OSError as exc:
            raise PublishError(f"Unable to connect to {s.host}:{s.port}: {exc}") from exc
        self._client.loop_start()

    def close(self) -> None:
        self._client.disconnect()
        self._client.loop_stop()
        logger.info("MQTT session closed")

    def attach_relay(self) -> MessageRelay:
        """Create the relay and subscribe it to ``input_topic``."""
        self.relay = MessageRelay(self.publish_now, self.settings.output_topic)
        return self.relay

    def publish_now(self, topic: str, payload: bytes, properties: Any = None) -> None:
        """Queue *payload* for *topic* on paho (thread-safe)."""
        info = self._client.publish(
            topic, payload, qos=self.settings.qos, properties=properties
        )
        if info.rc != mqtt.MQTT_ERR_SUCCESS:
            raise PublishError(
                f"Publish to {topic!r} rejected: {mqtt.error_string(info.rc)}"
            )

    async def publish(self, topic: str, payload: bytes) -> None:
        self.publish_now(topic, payload)

    # -- paho callbacks (network thread) -----------------------------------

    def _on_connect(self, client, userdata, flags, reason_code, properties=None) -> None:
        if reason_code.is_failure:
            logger.error("MQTT connection refused: %s", reason_code)
            return
        logger.info("MQTT client initialized.")
        if self.relay is not None and self.settings.input_topic:
            client.subscribe(self.settings.input_topic, qos=self.settings.qos)
            logger.info("Relaying %s -> %s", self.settings.input_topic, self.settings.output_topic)

    def _on_message(self, client, userdata, msg) -> None:
        if self.relay is None:
            return
        try:
            self.relay.handle(msg.payload, getattr(msg, "properties", None))
        except PublishError as exc:
            logger.error("Relay forward failed: %s", exc)
