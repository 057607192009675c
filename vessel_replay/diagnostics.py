"""
Failure logging with correlation identifiers.

Every failure that vessel-replay logs instead of (or before) raising gets a
fresh UUID so the lines belonging to one incident can be found together in
a container log: the message, the stack, and the chained ("inner")
exception with its own stack when there is one.
"""

from __future__ import annotations

import logging
import traceback
import uuid


def _format_stack(exc: BaseException) -> str:
    return "".join(traceback.format_tb(exc.__traceback__)).rstrip()


def log_failure(
    logger: logging.Logger,
    collector: str,
    action: str,
    exc: BaseException,
) -> str:
    """Log *exc* under a new correlation id and return the id.

    Args:
        logger: Logger of the calling module.
        collector: Collector name used as the line prefix.
        action: What was being done, e.g. ``"Loading of map file x.csv"``.
        exc: The exception being reported.

    Returns:
        The correlation id (a UUID4 string).
    """
    correlation_id = str(uuid.uuid4())
    logger.error(
        "%s: Correlation ID %s. %s failed. Exception: %s",
        collector, correlation_id, action, exc,
    )
    logger.error(
        "%s: Correlation ID %s. StackTrace: %s",
        collector, correlation_id, _format_stack(exc),
    )
    inner = exc.__cause__ or exc.__context__
    if inner is not None:
        logger.error(
            "%s: Correlation ID %s. Inner exception: %s",
            collector, correlation_id, inner,
        )
        logger.error(
            "%s: Correlation ID %s. Inner exception StackTrace: %s",
            collector, correlation_id, _format_stack(inner),
        )
    return correlation_id
