"""Human-paced random delays."""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable

logger = logging.getLogger(__name__)


def jitter(min_ms: int = 500, max_ms: int = 1500, sleep: Callable[[float], None] = time.sleep) -> float:
    """Sleep a uniformly random duration in [min_ms, max_ms]; return it in ms."""
    if min_ms > max_ms:
        raise ValueError(f"min_ms ({min_ms}) must not exceed max_ms ({max_ms})")
    delay_ms = random.uniform(min_ms, max_ms)
    logger.debug("Random delay of %.0f ms.", delay_ms)
    sleep(delay_ms / 1000)
    return delay_ms
