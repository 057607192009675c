"""
Run the collectors of a collectors.yaml file.

Usage:
    uv run python scripts/run_collectors.py collectors.yaml
    uv run python scripts/run_collectors.py collectors.yaml --capture out/capture.csv --cycles 1

Without ``--capture`` the envelopes go to the MQTT broker named in the
config and the process runs until SIGINT/SIGTERM. With ``--capture`` no
broker is used: every collector replays ``--cycles`` cycles without the
pacing delay, and the envelopes are written to the given CSV or Parquet
file (format chosen by the file suffix).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

# ---------------------------------------------------------------------------
# Logging setup
# ---------------------------------------------------------------------------

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_collectors")


async def _no_wait(_seconds: float) -> None:
    return None


# ---------------------------------------------------------------------------
# Modes
# ---------------------------------------------------------------------------

def _dry_run(config_path: str, capture_path: Path, cycles: int) -> None:
    import vessel_replay
    from vessel_replay.capture import RecordingPublisher, export_capture

    config = vessel_replay.load(config_path)
    publisher = RecordingPublisher()
    emitter = asyncio.run(
        vessel_replay.replay(config, publisher, max_cycles=cycles, sleep=_no_wait)
    )
    output_format = "parquet" if capture_path.suffix.lower() == ".parquet" else "csv"
    export_capture(publisher.envelopes(), capture_path, output_format=output_format)
    log.info("Captured %d envelope(s) -> %s", emitter.sent, capture_path)


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[1])
    parser.add_argument("config", help="Path to collectors.yaml")
    parser.add_argument("--capture", type=Path, help="Dry run: write envelopes to this file")
    parser.add_argument("--cycles", type=int, default=1, help="Cycles per collector in a dry run")
    args = parser.parse_args()

    import vessel_replay
    from vessel_replay.exceptions import VesselReplayError

    try:
        if args.capture is not None:
            _dry_run(args.config, args.capture, args.cycles)
        else:
            asyncio.run(vessel_replay.serve(args.config))
    except VesselReplayError as exc:
        log.error("%s", exc)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
