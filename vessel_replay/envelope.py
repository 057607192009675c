"""
Envelope builder for vessel-replay.

Turns a ``TelemetryRecord`` into the flat JSON object consumed by the
telemetry sinks::

    {"Collector": "...", "CollectorType": "Vessel1", "DeviceID": "...",
     "DeviceType": "...",          # only when the record has one
     "DateTime": "...",
     "<field>": ..., "<field>_UOM": "...", ...}

Keys appear in that order; field keys follow the record's field order.
Decimal readings are written as bare JSON numbers with exactly the digits
of the export (``23.50`` stays ``23.50``), everything else as JSON strings.
The payload is produced by simplejson with ``use_decimal=True``, so no
reading passes through a binary float, and quotes, commas and backslashes
in exported values are escaped correctly.

Two conditions make a record unencodable and raise ``EnvelopeError``: two
fields that flatten to the same key, and a non-finite number.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import simplejson

from vessel_replay.exceptions import EnvelopeError
from vessel_replay.records import UOM_SUFFIX, TelemetryRecord

METADATA_KEYS = ("Collector", "CollectorType", "DeviceID", "DeviceType", "DateTime")


def _check_finite(envelope: dict[str, Any]) -> None:
    for key, value in envelope.items():
        if isinstance(value, Decimal) and not value.is_finite():
            raise EnvelopeError(f"Non-finite number in {key!r}: {value}")


def _put(envelope: dict[str, Any], key: str, value: Any) -> None:
    if key in envelope:
        raise EnvelopeError(f"Duplicate envelope key: {key!r}")
    envelope[key] = value


def build_envelope(record: TelemetryRecord) -> dict[str, Any]:
    """Flatten *record* into an ordered envelope dict.

    Raises:
        EnvelopeError: If two keys collide.
    """
    envelope: dict[str, Any] = {
        "Collector": record.collector,
        "CollectorType": record.collector_type,
        "DeviceID": record.device_id,
    }
    if record.device_type is not None:
        envelope["DeviceType"] = record.device_type
    envelope["DateTime"] = record.timestamp

    for fv in record.fields:
        _put(envelope, fv.name, fv.value)
        if fv.unit is not None:
            _put(envelope, f"{fv.name}{UOM_SUFFIX}", fv.unit)
        for key, value in fv.extra.items():
            _put(envelope, f"{fv.name}_{key}", value)
    return envelope


def encode_envelope(envelope: dict[str, Any]) -> bytes:
    """Serialize an envelope to canonical UTF-8 JSON bytes.

    Raises:
        EnvelopeError: If the envelope holds a value JSON cannot represent.
    """
    _check_finite(envelope)
    try:
        text = simplejson.dumps(
            envelope,
            use_decimal=True,
            ensure_ascii=False,
            allow_nan=False,
            separators=(",", ":"),
        )
    except (TypeError, ValueError) as exc:
        raise EnvelopeError(f"Cannot encode envelope: {exc}") from exc
    return text.encode("utf-8")


def decode_envelope(payload: bytes, use_decimal: bool = False) -> dict[str, Any]:
    """Parse envelope bytes back into a dict.

    Args:
        payload: Envelope bytes as published.
        use_decimal: Return numbers as ``Decimal`` with their exact digits
            instead of ``float``.

    Raises:
        EnvelopeError: If *payload* is not a JSON object.
    """
    try:
        value = simplejson.loads(payload.decode("utf-8"), use_decimal=use_decimal)
    except (UnicodeDecodeError, ValueError) as exc:
        raise EnvelopeError(f"Payload is not valid JSON: {exc}") from exc
    if not isinstance(value, dict):
        raise EnvelopeError(f"Payload is a JSON {type(value).__name__}, not an object")
    return value
