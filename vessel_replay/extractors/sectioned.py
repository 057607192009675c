"""
Sectioned min/max extractor (logger exports with header sections).

Input structure:
  - Leading rows, identified by their first field:
      ``Device Type,<type>``  -> record DeviceType
      ``Serial No.,<serial>`` -> record DeviceID
      ``Tag,<tag1>,<tag2>,...``  -> ordered tag list (sanitized)
      ``Unit,<unit1>,<unit2>,...`` -> units, same order as the tags
    any other leading row is ignored.
  - A ``Date`` marker row; it switches to data mode and is itself skipped.
  - Data rows: ``date,?,?,min1,max1,min2,max2,...``

Lines are split on commas with empty fields removed, so ``a,,b`` is two
fields. From ``first_value_column`` onwards the columns alternate
``<tag>_MIN`` / ``<tag>_MAX``; the tag (and its unit) is picked by
``(index - first_value_column) // 2``. Each MAX is followed by the
``<tag>_UOM`` key.

Parser state (tags, units, device metadata, data mode) is rebuilt from the
cached lines on every cycle. One record per data row is yielded as soon as
the row is parsed.

Resilience is ``contained``: the first error ends replay of this collector
for the rest of the process lifetime (see ``vessel_replay.replay``).
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterator

from vessel_replay.dataset import RawDataset, load_lines
from vessel_replay.exceptions import ParsingError
from vessel_replay.extractors.base import BaseExtractor
from vessel_replay.layout_registry import Layout
from vessel_replay.records import FieldValue, TelemetryRecord, parse_decimal, sanitize_name

logger = logging.getLogger(__name__)


@dataclass
class SectionState:
    """Parser state for one pass over a sectioned dataset."""
    reading_measurements: bool = False
    tags: list[str] = field(default_factory=list)
    units: list[str] = field(default_factory=list)
    device_type: str = ""
    device_id: str = ""


class SectionedExtractor(BaseExtractor):
    """Turns each data row of a sectioned dataset into a min/max record."""

    kind = "sectioned"
    resilience = "contained"

    def __init__(
        self,
        collector: str,
        layout: Layout,
        collector_type: str | None = None,
    ) -> None:
        super().__init__(collector, layout, collector_type)
        self.settings = layout.sectioned_settings()

    def load_dataset(self, path: str | Path) -> RawDataset:
        return load_lines(path)

    def _split(self, line: str) -> list[str]:
        return [f for f in line.split(self.settings.delimiter) if f]

    def _read_header_row(self, state: SectionState, data: list[str]) -> None:
        """Update *state* from one row before the marker row."""
        s = self.settings
        label = data[0]
        if label == s.tag_label:
            state.tags.extend(sanitize_name(t.strip()) for t in data[1:])
        elif label == s.unit_label:
            for unit in data[1:]:
                unit = unit.strip()
                state.units.append(s.unit_substitutions.get(unit, unit))
        elif label == s.marker_label:
            state.reading_measurements = True
        elif label in (s.device_type_label, s.serial_label):
            if len(data) < 2:
                raise ParsingError(f"{label!r} row has no value")
            if label == s.device_type_label:
                state.device_type = data[1].strip()
            else:
                state.device_id = data[1].strip()

    def _build_record(
        self,
        state: SectionState,
        data: list[str],
        timestamp: str,
        line_no: int,
    ) -> TelemetryRecord:
        record = TelemetryRecord(
            collector=self.collector,
            collector_type=self.collector_type,
            device_id=state.device_id,
            device_type=state.device_type,
            timestamp=timestamp,
        )
        first = self.settings.first_value_column
        for index in range(first, len(data)):
            slot = (index - first) // 2
            if slot >= len(state.tags) or slot >= len(state.units):
                raise ParsingError(
                    f"Line {line_no}: column {index} has no matching tag/unit "
                    f"({len(state.tags)} tags, {len(state.units)} units)"
                )
            tag = state.tags[slot]
            try:
                value = parse_decimal(data[index])
            except ParsingError as exc:
                raise ParsingError(f"Line {line_no}, column {index}: {exc}") from exc

            if (index - first) % 2 == 0:
                record.fields.append(FieldValue(name=f"{tag}_MIN", value=value))
            else:
                record.fields.append(FieldValue(name=f"{tag}_MAX", value=value))
                record.fields.append(FieldValue(name=f"{tag}_UOM", value=state.units[slot]))
        return record

    def extract(self, dataset: RawDataset, timestamp: str) -> Iterator[TelemetryRecord]:
        state = SectionState()
        for line_no, line in enumerate(dataset.lines, start=1):
            data = self._split(line)
            if not data:
                continue
            if not state.reading_measurements:
                self._read_header_row(state, data)
                continue
            yield self._build_record(state, data, timestamp, line_no)
