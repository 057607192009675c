"""
Tag mapping loader for the row-replay collector.

A tag mapping file has no header and one line per tag::

    tagKey,deviceID,channel,unit
    T101,Pump1,Inlet Pressure,bar

Each tag key names a column of the row dataset; the entry says which
device the column belongs to, what the channel is called and its unit.

Failure behaviour:
  Lines are inserted in file order. A failure part way through (unreadable
  file, malformed or duplicate line) stops the load but **keeps** every
  entry inserted so far. The failure is logged with a correlation id and is
  not raised: replay carries on with the prefix that was loaded and simply
  never emits the channels past the failure point.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator

from vessel_replay.diagnostics import log_failure
from vessel_replay.exceptions import TagMapError

logger = logging.getLogger(__name__)

_FIELDS_PER_LINE = 4


@dataclass(frozen=True)
class TagMapEntry:
    """One mapping line: column key -> (device, channel, unit)."""
    tag_key: str
    device_id: str
    channel: str
    unit: str


class TagMap:
    """Insertion-ordered, unique-key mapping of tag keys to entries."""

    def __init__(self) -> None:
        self._entries: dict[str, TagMapEntry] = {}
        self.complete = True
        self.correlation_id: str | None = None

    def add(self, entry: TagMapEntry) -> None:
        """Insert *entry*; a repeated tag key raises ``TagMapError``."""
        if entry.tag_key in self._entries:
            raise TagMapError(f"Duplicate tag key: {entry.tag_key!r}")
        self._entries[entry.tag_key] = entry

    def get(self, tag_key: str) -> TagMapEntry | None:
        return self._entries.get(tag_key)

    def sorted_by_device(self) -> list[TagMapEntry]:
        """Entries ordered by device id; ties keep insertion order."""
        return sorted(self._entries.values(), key=lambda e: e.device_id)

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TagMapEntry]:
        return iter(self._entries.values())

    def __contains__(self, tag_key: object) -> bool:
        return tag_key in self._entries

    def __repr__(self) -> str:
        return f"TagMap({len(self)} entries, complete={self.complete})"


def parse_tag_line(line: str, line_no: int) -> TagMapEntry:
    """Split one mapping line into a ``TagMapEntry``.

    Extra trailing columns are ignored; fewer than four columns (including
    a blank line) raise ``TagMapError``.
    """
    parts = line.split(",")
    if len(parts) < _FIELDS_PER_LINE:
        raise TagMapError(
            f"Line {line_no}: expected tagKey,deviceID,channel,unit but got {line!r}"
        )
    return TagMapEntry(
        tag_key=parts[0],
        device_id=parts[1],
        channel=parts[2],
        unit=parts[3],
    )


def load_tag_map(path: str | Path, collector: str = "") -> TagMap:
    """Load a tag mapping file, keeping the loaded prefix on failure.

    Args:
        path: Path to the mapping CSV.
        collector: Collector name, used to prefix log lines.

    Returns:
        A ``TagMap``. When loading stopped early, ``complete`` is ``False``
        and ``correlation_id`` holds the id of the logged failure.
    """
    path = Path(path)
    tag_map = TagMap()
    try:
        text = path.read_text(encoding="utf-8-sig")
        for line_no, line in enumerate(text.splitlines(), start=1):
            tag_map.add(parse_tag_line(line, line_no))
        logger.info(
            "%s: Map file %s loaded successfully (%d tags).",
            collector, path.name, len(tag_map),
        )
    except (OSError, UnicodeDecodeError, TagMapError) as exc:
        tag_map.complete = False
        tag_map.correlation_id = log_failure(
            logger, collector, f"Loading of map file {path.name}", exc
        )
        logger.warning(
            "%s: continuing with %d tag(s) loaded before the failure",
            collector, len(tag_map),
        )
    return tag_map
