"""
vessel-replay: replays instrument datasets as normalized telemetry.

Public API surface:

- ``load(path)`` -- Load ``collectors.yaml`` and apply the environment
  overrides. Returns a ``ReplayConfig``.

- ``replay(config, publisher, ...)`` -- Build every enabled collector and
  run them against any ``Publisher`` until shutdown (or until every
  bounded loop has finished). Used directly for dry runs with a
  ``RecordingPublisher``.

- ``serve(path)`` -- Production entry point. Connects to the broker,
  attaches the input relay, installs SIGINT/SIGTERM handlers and replays
  until stopped.

- ``simulate(path)`` -- Run the leaf-device simulator against the broker
  named by ``DEVICE_CONNECTION_STRING``.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any

from vessel_replay.config import ReplayConfig, apply_env_overrides, load_config
from vessel_replay.emitter import Emitter, Publisher
from vessel_replay.layout_registry import Layout
from vessel_replay.runner import build_collectors, install_signal_handlers, run_collectors

__all__ = ["load", "replay", "serve", "simulate", "ReplayConfig"]

logger = logging.getLogger(__name__)


def load(path: str | Path) -> ReplayConfig:
    """Load collectors.yaml and apply environment overrides."""
    return apply_env_overrides(load_config(path))


async def replay(
    config: ReplayConfig,
    publisher: Publisher,
    shutdown: asyncio.Event | None = None,
    layouts: list[Layout] | None = None,
    **loop_kwargs: Any,
) -> Emitter:
    """Replay every enabled collector of *config* through *publisher*.

    Args:
        config: Validated configuration.
        publisher: Transport receiving every envelope.
        shutdown: Set to stop; ``None`` returns once all loops ended.
        layouts: Pre-loaded layouts (optional).
        **loop_kwargs: Passed to each ``ReplayLoop`` (``max_cycles``,
            ``sleep``, ``clock``).

    Returns:
        The emitter, whose ``sent`` counts the published envelopes.

    Raises:
        CollectorFailedError: If a collector with fatal resilience failed.
    """
    emitter = Emitter(publisher, topic=config.transport.output_topic)
    loops = build_collectors(config, emitter, layouts=layouts, **loop_kwargs)
    if not loops:
        logger.warning("No collector has a dataset to replay")
    await run_collectors(loops, shutdown=shutdown)
    return emitter


async def serve(path: str | Path) -> None:
    """Replay collectors.yaml onto the configured broker until signalled."""
    from vessel_replay.transport import MqttPublisher

    config = load(path)
    publisher = MqttPublisher(config.transport)
    if config.transport.input_topic:
        publisher.attach_relay()
    publisher.connect()

    shutdown = asyncio.Event()
    install_signal_handlers(shutdown)
    try:
        await replay(config, publisher, shutdown=shutdown)
    finally:
        publisher.close()


async def simulate(path: str | Path | None = None, max_batches: int | None = None) -> None:
    """Run the leaf-device simulator.

    The broker and the device topic come from the simulator connection
    string (``DEVICE_CONNECTION_STRING`` overrides the config file).
    """
    from vessel_replay.config import TransportConfig
    from vessel_replay.exceptions import ConfigValidationError
    from vessel_replay.simulator import LeafSimulator, parse_connection_string
    from vessel_replay.transport import MqttPublisher

    config = load(path) if path is not None else apply_env_overrides(ReplayConfig())
    settings = config.simulator
    if not settings.connection_string:
        raise ConfigValidationError("No device connection string configured")
    info = parse_connection_string(settings.connection_string)

    transport = TransportConfig(
        host=info.host,
        port=info.port or config.transport.port,
        client_id=info.device_id,
        input_topic=None,
    )
    publisher = MqttPublisher(transport)
    publisher.connect()
    try:
        await LeafSimulator(publisher, info.topic, settings).run(max_batches=max_batches)
    finally:
        publisher.close()
