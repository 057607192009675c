"""
Dataset loader for vessel-replay.

A ``RawDataset`` is an immutable, in-memory snapshot of a source file
taken once at collector start-up. Replay cycles re-traverse the snapshot;
nothing is ever re-read from disk.

- Delimited datasets (``rows`` / ``sectioned``) keep the file as an ordered
  tuple of lines.
- Markup datasets keep the text of the leaf ``td`` cells, in document
  order, after filtering out cells that wrap a nested table or an input
  control and cells holding only the non-breaking-space placeholder.

Encoding:
  Logger exports are not reliably UTF-8 (the micro sign in ``µS/cm`` is
  often written in a legacy code page). Lines are decoded with
  ``errors="replace"`` so such bytes become U+FFFD instead of aborting the
  load; the sectioned layout maps the damaged unit back to ``uS/cm``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from bs4 import BeautifulSoup

from vessel_replay.layout_registry import MarkupSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RawDataset:
    """Read-only snapshot of a dataset file.

    Attributes:
        path: The file the snapshot was taken from.
        lines: Text lines (delimited datasets), without line terminators.
        cells: Filtered table-cell texts (markup datasets).
    """
    path: Path
    lines: tuple[str, ...] = ()
    cells: tuple[str, ...] = ()

    def __len__(self) -> int:
        return len(self.lines) if self.lines else len(self.cells)


def load_lines(path: str | Path) -> RawDataset:
    """Read a delimited dataset into memory as a tuple of lines."""
    path = Path(path)
    text = path.read_text(encoding="utf-8-sig", errors="replace")
    lines = tuple(text.splitlines())
    logger.info("Loaded %d lines from %s", len(lines), path)
    return RawDataset(path=path, lines=lines)


def _is_leaf_cell(cell, placeholder: str) -> bool:
    if cell.find(["table", "input"]) is not None:
        return False
    return cell.get_text() != placeholder


def load_cells(
    path: str | Path,
    settings: MarkupSettings | None = None,
) -> RawDataset:
    """Read a markup dataset into memory as filtered ``td`` cell texts.

    Args:
        path: Path to the HTML document.
        settings: Markup settings; only ``placeholder`` is used here.

    Returns:
        A ``RawDataset`` whose ``cells`` are the untrimmed cell texts.
    """
    path = Path(path)
    settings = settings or MarkupSettings()
    markup = path.read_text(encoding="utf-8-sig", errors="replace")
    soup = BeautifulSoup(markup, "html.parser")
    cells = tuple(
        cell.get_text()
        for cell in soup.find_all("td")
        if _is_leaf_cell(cell, settings.placeholder)
    )
    logger.info("Loaded %d table cells from %s", len(cells), path)
    return RawDataset(path=path, cells=cells)
