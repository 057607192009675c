"""
Base extractor protocol / ABC for vessel-replay.

All dataset extractors implement this interface. The contract is:
1. load_dataset() reads the source file once and returns a RawDataset.
2. extract() traverses a RawDataset for one replay cycle and yields
   TelemetryRecord objects, all stamped with the cycle's timestamp.

extract() is a generator: records are produced one at a time so the
replay loop can publish each record as soon as it is built. Errors raised
while building a record propagate out of the generator untouched; what
happens next is decided by the extractor's ``resilience``:

- ``"fatal"``: the failure ends the collector task and is reported to the
  runner.
- ``"contained"``: the replay loop logs the failure and stops replaying
  this collector for good, without disturbing the rest of the process.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, ClassVar, Iterator, Literal

from vessel_replay.dataset import RawDataset
from vessel_replay.layout_registry import Layout
from vessel_replay.records import TelemetryRecord

if TYPE_CHECKING:
    from vessel_replay.config import CollectorConfig

Resilience = Literal["fatal", "contained"]


class BaseExtractor(ABC):
    """Abstract base class for dataset extractors.

    Attributes:
        collector: Value of the envelope's ``Collector`` key.
        layout: The layout providing parsing constants.
        collector_type: Value of the envelope's ``CollectorType`` key.
    """

    kind: ClassVar[str]
    resilience: ClassVar[Resilience] = "fatal"

    def __init__(
        self,
        collector: str,
        layout: Layout,
        collector_type: str | None = None,
    ) -> None:
        self.collector = collector
        self.layout = layout
        self.collector_type = collector_type or layout.collector_type

    @classmethod
    def from_config(cls, config: CollectorConfig, layout: Layout) -> BaseExtractor:
        """Build an extractor from a collector entry of collectors.yaml."""
        return cls(
            collector=config.name,
            layout=layout,
            collector_type=config.collector_type,
        )

    @abstractmethod
    def load_dataset(self, path: str | Path) -> RawDataset:
        """Read the source file into an immutable snapshot."""

    @abstractmethod
    def extract(self, dataset: RawDataset, timestamp: str) -> Iterator[TelemetryRecord]:
        """Yield the records of one replay cycle.

        Args:
            dataset: Snapshot returned by ``load_dataset()``.
            timestamp: The cycle timestamp, shared by every record.

        Raises:
            ParsingError: If the dataset holds data that cannot be turned
                into a record.
        """

    def __repr__(self) -> str:
        return (
            f"{type(self).__name__}(collector={self.collector!r}, "
            f"layout={self.layout.format_name!r})"
        )
