"""
Row-replay extractor (tag-mapped delimited datasets).

Input structure:
  - Line 1: column tags (``T101,T102,T205,...``)
  - Lines 2+: one sample per line, columns in header order
  - A separate tag mapping file resolves each tag to (device, channel, unit)

Grouping:
  Tag map entries are sorted by device id (ties keep mapping-file order).
  For every data row the sorted entries are walked once; each time the
  device id changes a new record is started and the previous one is
  yielded. The last open record is yielded at the end of the row, so one
  row produces exactly one record per distinct device.

Every entry contributes two envelope keys: ``<channel>`` with the decimal
reading and ``<channel>_UOM`` with the unit from the mapping file.

All records of a cycle share the timestamp taken when the cycle started.
A reading that is not a decimal number raises ``ParsingError``; the
collector's resilience is ``fatal``.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import TYPE_CHECKING, Iterator

from vessel_replay.dataset import RawDataset, load_lines
from vessel_replay.exceptions import ParsingError
from vessel_replay.extractors.base import BaseExtractor
from vessel_replay.layout_registry import Layout
from vessel_replay.records import FieldValue, TelemetryRecord, parse_decimal, sanitize_name
from vessel_replay.tagmap import TagMap, TagMapEntry, load_tag_map

if TYPE_CHECKING:
    from vessel_replay.config import CollectorConfig

logger = logging.getLogger(__name__)


def find_column(headers: list[str], tag_key: str) -> int | None:
    """Index of the first header equal to *tag_key* (case-sensitive)."""
    for index, header in enumerate(headers):
        if header == tag_key:
            return index
    return None


class RowReplayExtractor(BaseExtractor):
    """Replays a tag-mapped row dataset as device-grouped records."""

    kind = "rows"
    resilience = "fatal"

    def __init__(
        self,
        collector: str,
        layout: Layout,
        tag_map: TagMap,
        collector_type: str | None = None,
    ) -> None:
        super().__init__(collector, layout, collector_type)
        self.settings = layout.row_settings()
        self.tag_map = tag_map
        self._entries: list[TagMapEntry] = tag_map.sorted_by_device()
        if not self._entries:
            logger.warning("%s: tag map is empty; no telemetry will be sent", collector)

    @classmethod
    def from_config(cls, config: CollectorConfig, layout: Layout) -> RowReplayExtractor:
        tag_map = load_tag_map(config.map_file, collector=config.name)
        return cls(
            collector=config.name,
            layout=layout,
            tag_map=tag_map,
            collector_type=config.collector_type,
        )

    def load_dataset(self, path: str | Path) -> RawDataset:
        return load_lines(path)

    def _resolve_columns(self, headers: list[str]) -> dict[str, int]:
        """Map every tag key to its column; unknown keys fall back to 0."""
        columns: dict[str, int] = {}
        for entry in self._entries:
            index = find_column(headers, entry.tag_key)
            if index is None:
                logger.warning(
                    "%s: tag %r not in dataset header; reading column 0",
                    self.collector, entry.tag_key,
                )
                index = 0
            columns[entry.tag_key] = index
        return columns

    def _new_record(self, device_id: str, timestamp: str) -> TelemetryRecord:
        return TelemetryRecord(
            collector=self.collector,
            collector_type=self.collector_type,
            device_id=device_id,
            timestamp=timestamp,
        )

    def extract(self, dataset: RawDataset, timestamp: str) -> Iterator[TelemetryRecord]:
        if not dataset.lines or not self._entries:
            return

        delimiter = self.settings.delimiter
        headers = dataset.lines[0].split(delimiter)
        columns = self._resolve_columns(headers)

        for line_no, line in enumerate(dataset.lines[1:], start=2):
            if self.settings.skip_blank_lines and not line.strip():
                continue
            readings = line.split(delimiter)
            record: TelemetryRecord | None = None

            for entry in self._entries:
                if record is None or entry.device_id != record.device_id:
                    if record is not None:
                        yield record
                    record = self._new_record(entry.device_id, timestamp)

                index = columns[entry.tag_key]
                if index >= len(readings):
                    raise ParsingError(
                        f"Line {line_no} has {len(readings)} columns; "
                        f"tag {entry.tag_key!r} needs column {index}"
                    )
                try:
                    value = parse_decimal(readings[index])
                except ParsingError as exc:
                    raise ParsingError(
                        f"Line {line_no}, tag {entry.tag_key!r}: {exc}"
                    ) from exc
                record.fields.append(
                    FieldValue(
                        name=sanitize_name(entry.channel),
                        value=value,
                        unit=entry.unit,
                    )
                )

            # Flush the last device of the row
            if record is not None:
                yield record
