"""
Shared test fixtures, sample datasets and fakes for vessel-replay tests.

The three dataset formats are defined here as small inline samples so
every test module writes the same files. If a sample changes, the
expected values in the tests that use it change with it.
"""

from __future__ import annotations

from datetime import datetime
from pathlib import Path

import pytest

from vessel_replay.layout_registry import Layout, get_layout, load_all_layouts

# ---------------------------------------------------------------------------
# Sample datasets
# ---------------------------------------------------------------------------

ROWS_SAMPLE = """\
T1,T2,T3
23.5,1.20,7
24.0,1.25,8
"""

TAG_MAP_SAMPLE = """\
T1,Pump1,Inlet Temp,C
T2,Pump1,Pressure,bar
T3,Pump2,Flow-Rate,l/min
"""

SECTIONED_SAMPLE = """\
Device Type,LoggerX
Serial No.,SN-42
Tag,Cond-1,Temp
Unit,?S/cm,C
Date,Time,Interval,Min,Max,Min,Max
2024-01-01,10:00,60,1.0,2.0,20.5,21.5
2024-01-01,10:01,60,1.1,2.1,20.6,21.6
"""

MARKUP_SAMPLE = """\
<html><body>
<table>
<tr><td>Bench</td><td>Status</td><td>Online</td></tr>
<tr><td>Mode</td><td>Auto</td><td>&nbsp;</td></tr>
<tr><td><input type="button" value="Reset"></td><td>Site</td><td>North</td></tr>
<tr><td>Operator</td><td>AB</td></tr>
<tr><td>Inlet Temp</td><td>OK</td><td>OK</td><td>OK</td><td>OK</td><td> 41.2 </td><td>C</td></tr>
<tr><td>Flow-Rate</td><td>OK</td><td>HI</td><td>OK</td><td>OK</td><td>3.5</td><td>l/min</td></tr>
</table>
</body></html>
"""

FIXED_NOW = datetime(2024, 5, 1, 12, 30, 0)
FIXED_TIMESTAMP = "2024-05-01T12:30:00"


# ---------------------------------------------------------------------------
# Fakes
# ---------------------------------------------------------------------------

class SleepRecorder:
    """Awaitable stand-in for asyncio.sleep that records the delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class TickingClock:
    """Clock returning FIXED_NOW plus one minute per call."""

    def __init__(self) -> None:
        self.calls = 0

    def __call__(self) -> datetime:
        value = FIXED_NOW.replace(minute=FIXED_NOW.minute + self.calls)
        self.calls += 1
        return value


class FailingPublisher:
    """Publisher whose every publish raises."""

    async def publish(self, topic: str, payload: bytes) -> None:
        raise ConnectionError("broker unreachable")


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def layouts() -> list[Layout]:
    return load_all_layouts()


@pytest.fixture
def rows_layout(layouts) -> Layout:
    return get_layout(kind="rows", layouts=layouts)


@pytest.fixture
def sectioned_layout(layouts) -> Layout:
    return get_layout(kind="sectioned", layouts=layouts)


@pytest.fixture
def markup_layout(layouts) -> Layout:
    return get_layout(kind="markup", layouts=layouts)


@pytest.fixture
def rows_files(tmp_path) -> tuple[Path, Path]:
    data = tmp_path / "vessel1.csv"
    data.write_text(ROWS_SAMPLE, encoding="utf-8")
    mapping = tmp_path / "vessel1_map.csv"
    mapping.write_text(TAG_MAP_SAMPLE, encoding="utf-8")
    return data, mapping


@pytest.fixture
def sectioned_file(tmp_path) -> Path:
    path = tmp_path / "vessel2.csv"
    path.write_text(SECTIONED_SAMPLE, encoding="utf-8")
    return path


@pytest.fixture
def markup_file(tmp_path) -> Path:
    path = tmp_path / "vessel3.html"
    path.write_text(MARKUP_SAMPLE, encoding="utf-8")
    return path


# ---------------------------------------------------------------------------
# Pytest markers
# ---------------------------------------------------------------------------
def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "integration: mark test as integration test (replays sample datasets end to end)",
    )
