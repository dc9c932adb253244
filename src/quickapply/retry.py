"""Bounded retry around one unit of work."""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from typing import TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


def retry(
    action: Callable[[], T],
    max_retries: int = 3,
    delay: float = 1.0,
    retry_on: tuple[type[BaseException], ...] = (Exception,),
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """Run ``action``; on a ``retry_on`` failure wait ``delay`` seconds and try again.

    ``action`` runs at most ``max_retries + 1`` times. The last failure
    propagates once the budget is spent; exceptions outside ``retry_on``
    propagate immediately.
    """
    remaining = max_retries
    while True:
        try:
            return action()
        except retry_on as exc:
            if remaining <= 0:
                raise
            remaining -= 1
            logger.warning(
                "Attempt failed (%s). Retrying in %.1fs (%d retr%s left).",
                exc, delay, remaining, "y" if remaining == 1 else "ies",
            )
            sleep(delay)
