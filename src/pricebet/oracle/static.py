from __future__ import annotations

import random
from typing import Optional, Protocol


class FetchPrice(Protocol):
    """Spot-price source sampled once per sampling block."""

    def fetch_price(self) -> int: ...


class StaticPriceOracle:
    """Returns whatever price was last set. Used by tests and demos."""

    def __init__(self, price: int = 100):
        self.price = int(price)
        self.calls = 0

    def set_price(self, price: int) -> None:
        self.price = int(price)

    def fetch_price(self) -> int:
        self.calls += 1
        return self.price


class RandomWalkOracle:
    """Synthetic feed for OFFLINE_DEMO: integer random walk around `start`."""

    def __init__(self, start: int = 100, step: int = 5, seed: Optional[int] = None):
        self.price = int(start)
        self.step = int(step)
        self._rng = random.Random(seed)

    def fetch_price(self) -> int:
        self.price = max(1, self.price + self._rng.randint(-self.step, self.step))
        return self.price
