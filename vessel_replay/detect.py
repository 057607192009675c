"""
Format detection for instrument dataset files.

Uses the layout YAML files for detection instead of per-collector
hard-coding. Each layout defines detection rules (file suffixes and
first-field marker labels) that are tested in priority order:
markup -> sectioned -> rows.

Design: Strategy Pattern
- detect_format() returns an (extractor_class, layout) tuple.
- The extractor class is selected based on the layout's kind.
- New variants of an existing kind are added by creating a layout YAML
  file -- no code changes.

Detection algorithm:
1. Load all layout YAML files from vessel_replay/layouts/.
2. Read the first N lines of the input file (N = largest scan_rows).
3. For each layout (ordered by kind priority):
   a. The file suffix must be one of the layout's suffixes.
   b. Every marker label must be the first field of some scanned line.
   c. If all checks pass, return (extractor_class, layout).
4. Fallback: raise UnknownFormatError.
"""

from __future__ import annotations

import logging
from pathlib import Path

from vessel_replay.exceptions import UnknownFormatError
from vessel_replay.extractors.base import BaseExtractor
from vessel_replay.layout_registry import Layout, load_all_layouts

logger = logging.getLogger(__name__)

# Maps layout kind to extractor class
_EXTRACTOR_MAP: dict[str, type[BaseExtractor]] = {}


def get_extractor_class(kind: str) -> type[BaseExtractor]:
    """Return the extractor class registered for *kind*."""
    if not _EXTRACTOR_MAP:
        from vessel_replay.extractors.markup import MarkupExtractor
        from vessel_replay.extractors.rows import RowReplayExtractor
        from vessel_replay.extractors.sectioned import SectionedExtractor

        _EXTRACTOR_MAP["rows"] = RowReplayExtractor
        _EXTRACTOR_MAP["sectioned"] = SectionedExtractor
        _EXTRACTOR_MAP["markup"] = MarkupExtractor
    return _EXTRACTOR_MAP[kind]


def _read_lines(path: Path, n_rows: int) -> list[str]:
    """Read the first n_rows lines of a text file."""
    lines: list[str] = []
    with open(path, "r", encoding="utf-8-sig", errors="replace") as f:
        for i, line in enumerate(f):
            if i >= n_rows:
                break
            lines.append(line.rstrip("\n\r"))
    return lines


def _first_fields(lines: list[str]) -> set[str]:
    """First non-empty comma-separated field of every line."""
    firsts: set[str] = set()
    for line in lines:
        fields = [f for f in line.split(",") if f]
        if fields:
            firsts.add(fields[0])
    return firsts


def _check_layout(layout: Layout, path: Path, lines: list[str]) -> bool:
    """Test whether a file matches a layout's detection rules."""
    suffixes = [s.lower() for s in layout.detection.suffixes]
    if suffixes and path.suffix.lower() not in suffixes:
        return False

    markers = layout.detection.marker_labels
    if markers:
        firsts = _first_fields(lines[: layout.detection.scan_rows])
        if not set(markers).issubset(firsts):
            return False

    return True


def detect_format(
    path: str | Path,
    layouts: list[Layout] | None = None,
) -> tuple[type[BaseExtractor], Layout]:
    """Detect the format of a dataset file.

    Args:
        path: Path to the dataset file.
        layouts: Pre-loaded layouts (optional; loads from disk if None).

    Returns:
        Tuple of (extractor_class, matched_layout).

    Raises:
        UnknownFormatError: If the file does not match any known layout.
    """
    path = Path(path)

    if layouts is None:
        layouts = load_all_layouts()

    if not layouts:
        raise UnknownFormatError("No layout YAML files found. Cannot detect format.")

    max_rows = max(l.detection.scan_rows for l in layouts)
    lines = _read_lines(path, n_rows=max_rows)

    if not lines:
        raise UnknownFormatError(f"File is empty: {path}")

    for layout in layouts:
        if _check_layout(layout, path, lines):
            logger.info("Detected format '%s' for %s", layout.format_name, path)
            return get_extractor_class(layout.kind), layout

    first_lines = "\n".join(lines[:10])
    raise UnknownFormatError(
        f"Could not detect format for: {path}\n"
        f"Tried {len(layouts)} layouts, none matched.\n"
        f"First few lines:\n{first_lines}"
    )
