"""
Telemetry record model for vessel-replay.

Every extractor turns its dataset into ``TelemetryRecord`` objects; the
envelope builder is the only consumer. A record carries the fixed metadata
(collector, type, device, timestamp) plus an ordered list of ``FieldValue``
entries in source order.

Field naming:
  Channel and tag names come straight from instrument exports and may
  contain spaces or hyphens ("Inlet Pressure", "pH-Probe"). They are passed
  through ``sanitize_name()`` before they become envelope keys.

Numeric readings:
  Row-replay and sectioned readings are converted with ``parse_decimal()``,
  which keeps the exported precision (``Decimal("23.50")``) and refuses
  anything that is not a finite number.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation

from vessel_replay.exceptions import ParsingError

# Key suffix used for the unit paired with a value field
UOM_SUFFIX = "_UOM"


def sanitize_name(name: str) -> str:
    """Replace spaces and hyphens with underscores.

    Example: ``"Inlet Pressure-1"`` -> ``"Inlet_Pressure_1"``
    """
    return name.replace(" ", "_").replace("-", "_")


def parse_decimal(raw: str) -> Decimal:
    """Convert an exported reading to a ``Decimal``.

    Leading/trailing whitespace is ignored. Empty strings, non-numeric text
    and non-finite values (``NaN``, ``Infinity``) raise ``ParsingError``.
    """
    try:
        value = Decimal(raw.strip())
    except (InvalidOperation, AttributeError) as exc:
        raise ParsingError(f"Not a decimal reading: {raw!r}") from exc
    if not value.is_finite():
        raise ParsingError(f"Not a finite reading: {raw!r}")
    return value


@dataclass
class FieldValue:
    """One channel reading inside a record.

    Attributes:
        name: Sanitized key for the value.
        value: Decimal reading or raw string (markup values stay strings).
        unit: Unit of measure, emitted as ``<name>_UOM`` when present.
        extra: Additional ``<name>_<key>`` entries, e.g. the four alarm
            status cells of a markup channel.
    """
    name: str
    value: Decimal | str
    unit: str | None = None
    extra: dict[str, str] = field(default_factory=dict)


@dataclass
class TelemetryRecord:
    """One telemetry message for a device/channel group in a replay cycle."""
    collector: str
    collector_type: str
    device_id: str
    timestamp: str
    device_type: str | None = None
    fields: list[FieldValue] = field(default_factory=list)

    def field_names(self) -> list[str]:
        """Flattened envelope keys contributed by ``fields``, in order."""
        names: list[str] = []
        for fv in self.fields:
            names.append(fv.name)
            if fv.unit is not None:
                names.append(f"{fv.name}{UOM_SUFFIX}")
            names.extend(f"{fv.name}_{key}" for key in fv.extra)
        return names
