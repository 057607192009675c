"""
Run the leaf-device simulator.

Usage:
    DEVICE_CONNECTION_STRING="HostName=broker;DeviceId=leaf1;SharedAccessKey=x" \
        uv run python scripts/run_simulator.py [collectors.yaml] [--batches N]

``MESSAGE_COUNT`` sets the messages per batch (default 10).
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s  %(levelname)-8s  %(name)s  %(message)s",
    datefmt="%H:%M:%S",
)
log = logging.getLogger("run_simulator")


def main() -> int:
    parser = argparse.ArgumentParser(description="Run the leaf-device simulator")
    parser.add_argument("config", nargs="?", help="Optional collectors.yaml")
    parser.add_argument("--batches", type=int, default=None, help="Stop after N batches")
    args = parser.parse_args()

    import vessel_replay
    from vessel_replay.exceptions import VesselReplayError

    try:
        asyncio.run(vessel_replay.simulate(args.config, max_batches=args.batches))
    except VesselReplayError as exc:
        log.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        log.info("Simulator stopped")
    return 0


if __name__ == "__main__":
    sys.exit(main())
