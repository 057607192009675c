"""
Paced replay loop for one collector.

A replay cycle:
  1. Capture the cycle timestamp once.
  2. Walk the collector's RawDataset through its extractor, publishing
     every record as soon as it is yielded (strictly in sequence).
  3. Wait the pacing interval, then start again from the top.

The loop never re-reads the dataset and keeps no state between cycles.

Failure handling follows the extractor's ``resilience``:

- ``fatal``: any exception propagates out of ``run()``; the runner logs it
  and shuts the process down.
- ``contained``: the exception is logged with a correlation id and
  ``run()`` returns normally with ``disabled`` set. The collector never
  emits again, while the rest of the process keeps running.

The clock and the sleep coroutine are injectable so tests can drive
cycles without waiting.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Awaitable, Callable

from vessel_replay.dataset import RawDataset
from vessel_replay.diagnostics import log_failure
from vessel_replay.emitter import Emitter
from vessel_replay.extractors.base import BaseExtractor

logger = logging.getLogger(__name__)

DEFAULT_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%S"


class ReplayLoop:
    """Long-lived, paced replay of one dataset through one extractor.

    Attributes:
        extractor: Builds the records of a cycle.
        dataset: The snapshot replayed every cycle.
        emitter: Publishes each record.
        interval: Pacing delay in seconds after every completed cycle.
        max_cycles: Stop after this many cycles (``None`` = forever). The
            final cycle is not followed by a pacing delay.
        cycles: Completed cycles so far.
        disabled: ``True`` once a contained failure stopped the loop.
        correlation_id: Id of the logged failure, if any.
    """

    def __init__(
        self,
        extractor: BaseExtractor,
        dataset: RawDataset,
        emitter: Emitter,
        *,
        interval: float | None = None,
        timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT,
        clock: Callable[[], datetime] = datetime.now,
        sleep: Callable[[float], Awaitable[object]] = asyncio.sleep,
        max_cycles: int | None = None,
    ) -> None:
        self.extractor = extractor
        self.dataset = dataset
        self.emitter = emitter
        self.interval = interval if interval is not None else extractor.layout.interval
        self.timestamp_format = timestamp_format
        self.max_cycles = max_cycles
        self._clock = clock
        self._sleep = sleep
        self.cycles = 0
        self.disabled = False
        self.correlation_id: str | None = None

    @property
    def name(self) -> str:
        return self.extractor.collector

    async def run_cycle(self) -> int:
        """Run one full traversal of the dataset.

        Returns:
            Number of records published.
        """
        timestamp = self._clock().strftime(self.timestamp_format)
        published = 0
        for record in self.extractor.extract(self.dataset, timestamp):
            await self.emitter.emit(record)
            published += 1
        self.cycles += 1
        logger.info(
            "%s: File %s - processed successfully (cycle %d, %d record(s)).",
            self.name, self.dataset.path.name, self.cycles, published,
        )
        return published

    async def _run_forever(self) -> None:
        while True:
            await self.run_cycle()
            if self.max_cycles is not None and self.cycles >= self.max_cycles:
                return
            await self._sleep(self.interval)

    async def run(self) -> None:
        """Replay until ``max_cycles`` is reached or a failure occurs."""
        logger.info(
            "%s: replaying %s every %ss (resilience=%s)",
            self.name, self.dataset.path.name, self.interval,
            self.extractor.resilience,
        )
        if self.extractor.resilience != "contained":
            await self._run_forever()
            return

        try:
            await self._run_forever()
        except Exception as exc:
            self.disabled = True
            self.correlation_id = log_failure(
                logger, self.name, f"Processing of file {self.dataset.path.name}", exc
            )
            logger.warning("%s: replay stopped for the rest of this process", self.name)
