"""
Custom exception hierarchy for vessel-replay.

Callers can catch a specific failure (e.g. ``TagMapError`` vs
``ParsingError``) without relying on generic ValueError/IndexError, and the
replay runner uses the hierarchy to tell data problems apart from transport
problems when it logs a failed collector.
"""


class VesselReplayError(Exception):
    """Base exception for all vessel-replay errors."""


class ConfigValidationError(VesselReplayError):
    """Raised when collectors.yaml or a connection string is unusable.

    This can happen if:
    - The config file is empty.
    - A device connection string lacks HostName or DeviceId.

    Schema problems (a ``rows`` collector without ``map_file``, duplicate
    collector names) surface as ``pydantic.ValidationError``.
    """


class UnknownFormatError(VesselReplayError):
    """Raised when a dataset file does not match any known layout.

    Includes a snippet of the file's first few lines to aid debugging.
    """


class TagMapError(VesselReplayError):
    """Raised for a malformed or duplicate line in a tag mapping file."""


class ParsingError(VesselReplayError):
    """Raised when an extractor meets data it cannot turn into a record.

    For example a reading that is not a decimal number, a data row shorter
    than the header, or a markup stride cut off by the end of the cell list.
    """


class EnvelopeError(VesselReplayError):
    """Raised when a record cannot be encoded as a telemetry envelope."""


class PublishError(VesselReplayError):
    """Raised when the transport rejects an outgoing message."""


class ExportError(VesselReplayError):
    """Raised when a capture cannot be written to disk."""


class CollectorFailedError(VesselReplayError):
    """Raised by the runner when a collector with fatal resilience dies."""
