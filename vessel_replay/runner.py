"""
Collector supervision for vessel-replay.

Builds one ``ReplayLoop`` per enabled collector and runs each as its own
asyncio task. The runner owns the task handles and decides what a task's
end means:

- A task that finishes normally (bounded run, or a contained failure that
  disabled the collector) is logged; the process keeps running, idle if
  nothing else is left, until shutdown.
- A task that raises (fatal resilience) is logged with a correlation id,
  every other task is cancelled, and ``CollectorFailedError`` is raised so
  the host process supervisor sees a failed process.
- The shutdown event (SIGINT/SIGTERM in ``serve``) cancels everything and
  returns. Cancellation does not interrupt a cycle at a safe point; the
  process is simply ending.

All collectors share this one process, so a fatal failure in one of them
also stops the healthy ones. Run collectors under separate processes when
they must fail independently.
"""

from __future__ import annotations

import asyncio
import logging
import signal
from pathlib import Path
from typing import Any

from vessel_replay.config import CollectorConfig, ReplayConfig
from vessel_replay.detect import detect_format, get_extractor_class
from vessel_replay.diagnostics import log_failure
from vessel_replay.emitter import Emitter
from vessel_replay.exceptions import CollectorFailedError
from vessel_replay.extractors.base import BaseExtractor
from vessel_replay.layout_registry import Layout, get_layout, load_all_layouts
from vessel_replay.replay import ReplayLoop

logger = logging.getLogger(__name__)


# Collector fields a layout kind cannot run without.
_REQUIRED_FIELDS = {"rows": "map_file", "markup": "device_id"}


def resolve_extractor(
    collector: CollectorConfig,
    layouts: list[Layout],
) -> tuple[type[BaseExtractor], Layout]:
    """Pick the extractor class and layout for a collector entry."""
    if collector.layout is not None:
        layout = get_layout(format_name=collector.layout, layouts=layouts)
        return get_extractor_class(layout.kind), layout
    if collector.kind == "auto":
        return detect_format(collector.data_file, layouts=layouts)
    layout = get_layout(kind=collector.kind, layouts=layouts)
    return get_extractor_class(layout.kind), layout


def build_collector(
    collector: CollectorConfig,
    emitter: Emitter,
    layouts: list[Layout],
    timestamp_format: str,
    **loop_kwargs: Any,
) -> ReplayLoop | None:
    """Load a collector's dataset and wrap it in a ReplayLoop.

    Returns ``None`` (after logging) when the dataset file does not exist,
    or when the resolved layout needs a field the entry leaves unset (a
    ``kind: auto`` entry detected as rows without ``map_file``, or as markup
    without ``device_id``).
    """
    if not Path(collector.data_file).exists():
        logger.warning(
            "%s: DataSet Not Found! (%s)", collector.name, collector.data_file
        )
        return None

    extractor_cls, layout = resolve_extractor(collector, layouts)
    required = _REQUIRED_FIELDS.get(layout.kind)
    if required and not getattr(collector, required):
        logger.error(
            "%s: layout %s needs %s; collector not started",
            collector.name, layout.format_name, required,
        )
        return None

    extractor = extractor_cls.from_config(collector, layout)
    logger.info("%s: Retrieving device data from file %s...", collector.name, collector.data_file)
    dataset = extractor.load_dataset(collector.data_file)
    return ReplayLoop(
        extractor,
        dataset,
        emitter,
        interval=collector.interval,
        timestamp_format=timestamp_format,
        **loop_kwargs,
    )


def build_collectors(
    config: ReplayConfig,
    emitter: Emitter,
    layouts: list[Layout] | None = None,
    **loop_kwargs: Any,
) -> list[ReplayLoop]:
    """Build a ReplayLoop for every enabled collector whose data exists.

    Extra keyword arguments (``sleep``, ``clock``, ``max_cycles``) are
    passed to every ``ReplayLoop``.
    """
    if layouts is None:
        layouts = load_all_layouts()
    loops: list[ReplayLoop] = []
    for collector in config.enabled_collectors():
        loop = build_collector(
            collector, emitter, layouts, config.timestamp_format, **loop_kwargs
        )
        if loop is not None:
            loops.append(loop)
    logger.info("Built %d collector(s)", len(loops))
    return loops


async def _cancel_all(tasks: set[asyncio.Task]) -> None:
    for task in tasks:
        task.cancel()
    await asyncio.gather(*tasks, return_exceptions=True)


async def run_collectors(
    loops: list[ReplayLoop],
    shutdown: asyncio.Event | None = None,
) -> None:
    """Run every loop as a supervised task until shutdown.

    Args:
        loops: The collectors to run.
        shutdown: Set to stop. When ``None``, returns once every task has
            finished normally.

    Raises:
        CollectorFailedError: If a collector task raised.
    """
    tasks: dict[asyncio.Task, ReplayLoop] = {
        asyncio.create_task(loop.run(), name=loop.name): loop for loop in loops
    }
    pending: set[asyncio.Task] = set(tasks)
    shutdown_wait: asyncio.Task | None = None
    if shutdown is not None:
        shutdown_wait = asyncio.create_task(shutdown.wait(), name="shutdown_wait")
        pending.add(shutdown_wait)

    try:
        while pending:
            done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)

            if shutdown_wait is not None and shutdown_wait in done:
                logger.info("Shutdown requested; stopping %d task(s)", len(pending))
                await _cancel_all(pending)
                return

            for task in done:
                loop = tasks[task]
                exc = task.exception()
                if exc is not None:
                    correlation_id = log_failure(logger, loop.name, "Replay", exc)
                    await _cancel_all(pending)
                    raise CollectorFailedError(
                        f"Collector '{loop.name}' failed (correlation id {correlation_id})"
                    ) from exc
                if loop.disabled:
                    logger.warning("%s: disabled; process keeps running", loop.name)
                else:
                    logger.info("%s: finished after %d cycle(s)", loop.name, loop.cycles)

            if shutdown_wait is not None and pending == {shutdown_wait}:
                logger.info("No active collectors left; idling until shutdown")
    finally:
        if shutdown_wait is not None and not shutdown_wait.done():
            shutdown_wait.cancel()


def install_signal_handlers(shutdown: asyncio.Event) -> None:
    """Set *shutdown* on SIGINT/SIGTERM (where the platform supports it)."""
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, shutdown.set)
        except (NotImplementedError, RuntimeError):
            logger.debug("Signal handler for %s not supported here", sig)
