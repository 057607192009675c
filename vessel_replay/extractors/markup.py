"""
Markup extractor (fixed-stride table cells).

Input structure (after the loader's cell filter):
  - Cells 0..start_index-1: page preamble, ignored
  - Then one stride of ``stride`` cells per channel, relative to the
    stride's first index ``i``:
      i      channel name
      i+1..4 alarm status 1..4
      i+5    value
      i+6    unit

Each poll yields exactly one record covering every channel, with keys
``<name>``, ``<name>_UOM`` and ``<name>_AlarmStatus1..4``; all values are
the trimmed cell strings. The device id is not in the document and comes
from the collector configuration.

A stride cut short by the end of the cell list raises ``ParsingError``;
resilience is ``fatal``.
"""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from vessel_replay.dataset import RawDataset, load_cells
from vessel_replay.exceptions import ParsingError
from vessel_replay.extractors.base import BaseExtractor
from vessel_replay.layout_registry import Layout
from vessel_replay.records import FieldValue, TelemetryRecord, sanitize_name

if TYPE_CHECKING:
    from vessel_replay.config import CollectorConfig


class MarkupExtractor(BaseExtractor):
    """Builds one multi-channel record per poll from a cell list."""

    kind = "markup"
    resilience = "fatal"

    def __init__(
        self,
        collector: str,
        layout: Layout,
        device_id: str,
        collector_type: str | None = None,
    ) -> None:
        super().__init__(collector, layout, collector_type)
        self.settings = layout.markup_settings()
        self.device_id = device_id

    @classmethod
    def from_config(cls, config: CollectorConfig, layout: Layout) -> MarkupExtractor:
        return cls(
            collector=config.name,
            layout=layout,
            device_id=config.device_id,
            collector_type=config.collector_type,
        )

    def load_dataset(self, path: str | Path) -> RawDataset:
        return load_cells(path, self.settings)

    def extract(self, dataset: RawDataset, timestamp: str) -> Iterator[TelemetryRecord]:
        s = self.settings
        cells = dataset.cells
        last_offset = max(s.name_offset, s.value_offset, s.unit_offset, *s.alarm_offsets)

        record = TelemetryRecord(
            collector=self.collector,
            collector_type=self.collector_type,
            device_id=self.device_id,
            timestamp=timestamp,
        )
        for i in range(s.start_index, len(cells), s.stride):
            if i + last_offset >= len(cells):
                raise ParsingError(
                    f"Incomplete channel at cell {i}: need {last_offset + 1} cells, "
                    f"only {len(cells) - i} left"
                )
            name = sanitize_name(cells[i + s.name_offset].strip())
            record.fields.append(
                FieldValue(
                    name=name,
                    value=cells[i + s.value_offset].strip(),
                    unit=cells[i + s.unit_offset].strip(),
                    extra={
                        f"AlarmStatus{n}": cells[i + offset].strip()
                        for n, offset in enumerate(s.alarm_offsets, start=1)
                    },
                )
            )
        yield record
