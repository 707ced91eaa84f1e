"""Retry pacing for infrastructure connects (broker, inventory database).

`exponential_backoff` yields the delay that preceded each attempt (the first is
the initial delay, not slept), growing by `multiplier` up to `max_delay`.
`connect_attempts` numbers those attempts using the backoff fields of Settings.
"""
import asyncio
from typing import Any, AsyncIterator, Tuple


async def exponential_backoff(
    initial_delay: float,
    max_delay: float,
    multiplier: float,
    max_attempts: int,
) -> AsyncIterator[float]:
    delay = initial_delay
    for attempt in range(1, max_attempts + 1):
        yield delay
        if attempt < max_attempts:
            delay = min(delay * multiplier, max_delay)
            await asyncio.sleep(delay)


async def connect_attempts(settings: Any) -> AsyncIterator[Tuple[int, float]]:
    """Yield ``(attempt, delay)`` pairs, attempt counting from 1."""
    attempt = 0
    async for delay in exponential_backoff(
        settings.initial_backoff_seconds,
        settings.max_backoff_seconds,
        settings.backoff_multiplier,
        settings.max_connection_attempts,
    ):
        attempt += 1
        yield attempt, delay
