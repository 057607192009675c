"""
Capture of published telemetry for dry runs and inspection.

``RecordingPublisher`` satisfies the ``Publisher`` protocol without a
broker: it keeps every (topic, payload) pair in memory. The captured
envelopes can then be written to disk as a table with
``export_capture()``, one row per envelope and one column per key.

Why Parquet is offered next to CSV:
- Envelopes from different collectors have different key sets; Parquet
  keeps the resulting sparse columns typed (no re-parsing on load).
- CSV is kept for interoperability with spreadsheet tools.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Literal

import pandas as pd

from vessel_replay.envelope import decode_envelope
from vessel_replay.exceptions import ExportError

logger = logging.getLogger(__name__)

_SUPPORTED_FORMATS = {"csv", "parquet"}


class RecordingPublisher:
    """In-memory publisher; ``messages`` holds (topic, payload) pairs."""

    def __init__(self) -> None:
        self.messages: list[tuple[str, bytes]] = []

    async def publish(self, topic: str, payload: bytes) -> None:
        self.messages.append((topic, payload))

    def envelopes(self) -> list[dict[str, Any]]:
        """Decode every captured payload."""
        return [decode_envelope(payload) for _, payload in self.messages]

    def clear(self) -> None:
        self.messages.clear()


def envelopes_to_frame(envelopes: list[dict[str, Any]]) -> pd.DataFrame:
    """Flatten envelopes into a DataFrame (columns in first-seen order)."""
    if not envelopes:
        return pd.DataFrame()
    return pd.json_normalize(envelopes)


def export_capture(
    envelopes: list[dict[str, Any]],
    path: str | Path,
    output_format: Literal["csv", "parquet"] = "csv",
) -> Path:
    """Write captured envelopes to *path*.

    The parent directory is created if needed.

    Raises:
        ExportError: If *output_format* is unsupported, or if the write fails.
    """
    if output_format not in _SUPPORTED_FORMATS:
        raise ExportError(
            f"Unsupported output format: '{output_format}'. "
            f"Supported formats: {sorted(_SUPPORTED_FORMATS)}"
        )
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    df = envelopes_to_frame(envelopes)
    try:
        if output_format == "csv":
            df.to_csv(path, index=False, encoding="utf-8")
        else:
            # Mixed numeric/string columns (markup values) are stored as text
            df = df.astype({c: "string" for c in df.columns if df[c].dtype == object})
            df.to_parquet(path, index=False, engine="pyarrow")
    except Exception as exc:
        raise ExportError(
            f"Failed to write {path.name} as {output_format}: {exc}"
        ) from exc
    logger.info("Exported %d envelope(s) -> %s (%d cols)", len(df), path, len(df.columns))
    return path
