from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional, Tuple

from ..oracle.static import FetchPrice
from .aggregates import StakeAggregates
from .arith import checked

logger = logging.getLogger(__name__)

Outcome = Literal["win", "wipeout", "skipped"]


def schedule(block: int, period: int, samples: int) -> Tuple[bool, bool]:
    """Return (take_sample, end_period) for `block`.

    Samples are spaced `period // samples` blocks apart and the last one lands
    on the final block of the period, e.g. period=7, samples=3:

        block % 7:  0 1 2 3 4 5 6
        sample:         +   +   *     (* also ends the period)
    """
    spacing = period // samples
    remaining = period - 1 - block % period
    take = remaining % spacing == 0 and remaining // spacing < samples
    return take, take and remaining == 0


@dataclass
class RoundClock:
    index: int = 0
    prices: List[int] = field(default_factory=list)


@dataclass
class RoundOutcome:
    index: int
    outcome: Outcome
    mean: Optional[int]
    target: int
    total: int
    pot: int


class RoundSettlement:
    """Samples the oracle and settles each round against the target."""

    def __init__(
        self,
        aggregates: StakeAggregates,
        oracle: FetchPrice,
        period: int,
        samples: int,
        target_attenuation: int,
        clock: Optional[RoundClock] = None,
    ):
        self.aggregates = aggregates
        self.oracle = oracle
        self.period = int(period)
        self.samples = int(samples)
        self.target_attenuation = int(target_attenuation)
        self.clock = clock or RoundClock()

    @property
    def index(self) -> int:
        return self.clock.index

    def on_finalize(self, block: int) -> Optional[RoundOutcome]:
        """Run once at the end of every block; returns the outcome at a round boundary."""
        take, end = schedule(block, self.period, self.samples)
        if not take:
            return None
        price = checked(int(self.oracle.fetch_price()), self.aggregates.bits)
        self.clock.prices.append(price)
        logger.debug(f"block {block}: sampled {price} ({len(self.clock.prices)}/{self.samples})")
        if not end:
            return None
        return self._end_period()

    def _end_period(self) -> RoundOutcome:
        agg = self.aggregates
        index = self.clock.index
        prices, self.clock.prices = self.clock.prices, []
        total, pot = agg.total, agg.pot

        if total == 0:
            mean = None
            agg.settle_idle()
            outcome: Outcome = "skipped"
        else:
            mean = sum(prices) // self.samples
            if mean < agg.target:
                agg.settle_win(mean, index)
                outcome = "win"
            else:
                agg.settle_wipeout(self.target_attenuation, index)
                outcome = "wipeout"

        self.clock.index += 1
        logger.info(
            f"round {index} {outcome}: mean={mean} target={agg.target} total {total}->{agg.total} pot={pot}"
        )
        return RoundOutcome(index=index, outcome=outcome, mean=mean, target=agg.target, total=total, pot=pot)
