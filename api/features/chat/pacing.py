"""Typing-speed pacing between forwarded chunks."""
import asyncio
import random
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional

from core.settings import RelaySettings


class Speed(str, Enum):
    SLOW = "slow"
    NORMAL = "normal"
    FAST = "fast"

    @classmethod
    def parse(cls, value: Optional[str]) -> "Speed":
        """Unknown or missing values fall back to ``normal``."""
        try:
            return cls((value or cls.NORMAL.value).strip().lower())
        except ValueError:
            return cls.NORMAL


DEFAULT_BASE_MS: Dict[Speed, int] = {
    Speed.FAST: 20,
    Speed.NORMAL: 100,
    Speed.SLOW: 200,
}


class Pacer:
    """Sleeps ``base + uniform[0, jitter_ratio * base)`` ms after each chunk.

    This is a deliberate reveal delay for the client, not a rate limit, so it
    is applied after every forwarded chunk.
    """

    def __init__(
        self,
        base_ms: Optional[Dict[Speed, int]] = None,
        jitter_ratio: float = 0.4,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Optional[random.Random] = None,
    ):
        self.base_ms = dict(DEFAULT_BASE_MS if base_ms is None else base_ms)
        self.jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._rng = rng or random.Random()

    def delay_ms(self, speed: Speed) -> float:
        base = self.base_ms[speed]
        # random() is in [0, 1), which keeps the upper bound exclusive
        return base + self._rng.random() * self.jitter_ratio * base

    async def pause(self, speed: Speed) -> float:
        delay = self.delay_ms(speed)
        await self._sleep(delay / 1000.0)
        return delay


def build_pacer(relay_settings: RelaySettings) -> Pacer:
    return Pacer(
        base_ms={
            Speed.FAST: relay_settings.PACING_FAST_MS,
            Speed.NORMAL: relay_settings.PACING_NORMAL_MS,
            Speed.SLOW: relay_settings.PACING_SLOW_MS,
        },
        jitter_ratio=relay_settings.PACING_JITTER_RATIO,
    )
