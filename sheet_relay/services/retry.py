from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from ..errors import FileProcessingError, MissingParameters

"""Bounded retry with a constant delay.

Used around the extraction step, the only step that talks to an eventually
consistent collaborator (the converted workbook may not be readable right
after conversion). The call blocks for the whole sleep+retry cycle.
"""

__all__ = [
    "with_retry",
]

logger = logging.getLogger(__name__)

T = TypeVar("T")


def with_retry(
    operation: Callable[[], T],
    max_attempts: int,
    delay_seconds: float,
    context: str = "Operation",
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Call ``operation`` until it succeeds or ``max_attempts`` calls have failed.

    Args:
        operation: Zero-argument callable to run
        max_attempts: Maximum number of calls (>= 1)
        delay_seconds: Constant pause between attempts (no backoff scaling)
        context: Label used in log and error messages
        sleep: Injected sleep function (tests pass a recorder)

    Returns:
        The value returned by the first successful call.

    Raises:
        FileProcessingError: After the last failed attempt; the message names
            the attempt count and the final underlying error, which is also
            chained as ``__cause__``.
    """
    if max_attempts < 1:
        raise MissingParameters(f"{context}: max_attempts must be >= 1 (got {max_attempts})")

    last_error: Exception | None = None
    for attempt in range(1, max_attempts + 1):
        try:
            logger.debug("%s - Attempt %d/%d", context, attempt, max_attempts)
            return operation()
        except Exception as e:
            last_error = e
            logger.warning("%s - Attempt %d/%d failed: %s", context, attempt, max_attempts, e)
            if attempt < max_attempts and delay_seconds > 0:
                sleep(delay_seconds)

    raise FileProcessingError(
        f"{context} failed after {max_attempts} attempts. Last error: {last_error}",
        {"attempts": max_attempts, "last_error": str(last_error)},
    ) from last_error
