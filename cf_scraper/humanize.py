"""Randomized, bounded delays that pace the browser like a person"""

import asyncio
import random
from typing import Tuple


async def human_delay(delay_range: Tuple[float, float]) -> float:
    """
    Sleep for a random duration inside ``delay_range``.

    Args:
        delay_range: (minimum, maximum) seconds

    Returns:
        The number of seconds slept
    """
    low, high = delay_range
    duration = random.uniform(low, high)
    await asyncio.sleep(duration)
    return duration
