"""
BetEngine: the single entry point driven by the scheduler.

Account actions (`bet`, `unbet`, `collect`) and the per-block `on_finalize`
each run to completion, are committed to the store in one transaction, and
only then are announced on the event bus. Nothing here blocks or retries.
"""

from __future__ import annotations

import logging
from typing import Callable, Dict, List, Optional

from ..config.loader import EngineSettings
from ..events.bus import publish
from ..events.schema import (
    BaseEvent,
    Collected,
    EventEnvelope,
    PositionCleared,
    PotContributed,
    RoundSettled,
    Staked,
    Unstaked,
)
from ..ledger.ledger import Currency
from ..metrics.engine import (
    get_bet_actions_total,
    get_price_samples_total,
    get_rounds_settled_total,
    set_aggregate_gauges,
)
from ..oracle.static import FetchPrice
from ..store.sqlite_store import Snapshot, StateStore
from .aggregates import StakeAggregates
from .errors import BadOrigin
from .model import AccountId, Betting, PayoutRecord
from .positions import PositionLedger
from .settlement import RoundClock, RoundOutcome, RoundSettlement

logger = logging.getLogger(__name__)

Origin = Optional[str]


def ensure_signed(origin: Origin) -> AccountId:
    """Return the signing account or raise BadOrigin for unsigned calls."""
    if origin is None or not str(origin):
        raise BadOrigin("action requires a signed origin")
    return str(origin)


class BetEngine:
    def __init__(
        self,
        settings: EngineSettings,
        currency: Currency,
        oracle: FetchPrice,
        store: Optional[StateStore] = None,
        publisher: Optional[Callable[[EventEnvelope], None]] = None,
        snapshot: Optional[Snapshot] = None,
    ):
        self.settings = settings
        if snapshot is not None:
            agg = snapshot.aggregates
            self.aggregates = StakeAggregates(
                target=agg["target"],
                amount_bits=settings.amount_bits,
                pot=agg["pot"],
                total=agg["total"],
                incoming=agg["incoming"],
                outgoing=agg["outgoing"],
                payouts=snapshot.payouts,
            )
            clock = RoundClock(index=snapshot.index, prices=list(snapshot.prices))
            bets = snapshot.bets
            self.last_block = snapshot.last_block
        else:
            self.aggregates = StakeAggregates(target=settings.target, amount_bits=settings.amount_bits)
            clock = RoundClock()
            bets = {}
            self.last_block = None
        self.positions = PositionLedger(self.aggregates, currency, bets)
        self.settlement = RoundSettlement(
            self.aggregates,
            oracle,
            period=settings.period,
            samples=settings.samples,
            target_attenuation=settings.target_attenuation,
            clock=clock,
        )
        self.store = store
        self.publisher = publisher or publish
        self._sequence = 0
        # Metrics
        self.actions_total = get_bet_actions_total()
        self.rounds_total = get_rounds_settled_total()
        self.samples_total = get_price_samples_total()

    @classmethod
    def restore(
        cls,
        settings: EngineSettings,
        currency: Currency,
        oracle: FetchPrice,
        store: StateStore,
        publisher: Optional[Callable[[EventEnvelope], None]] = None,
    ) -> "BetEngine":
        """Build from the store, persisting genesis state on first run."""
        snapshot = store.load()
        engine = cls(settings, currency, oracle, store=store, publisher=publisher, snapshot=snapshot)
        if snapshot is None:
            engine._commit()
            logger.info(f"initialized fresh state at {store.path}")
        else:
            logger.info(f"restored round {snapshot.index} with {len(snapshot.bets)} positions from {store.path}")
        return engine

    # ---- read accessors ----

    @property
    def index(self) -> int:
        return self.settlement.index

    @property
    def prices(self) -> List[int]:
        return list(self.settlement.clock.prices)

    @property
    def pot(self) -> int:
        return self.aggregates.pot

    @property
    def total(self) -> int:
        return self.aggregates.total

    @property
    def incoming(self) -> int:
        return self.aggregates.incoming

    @property
    def outgoing(self) -> int:
        return self.aggregates.outgoing

    @property
    def target(self) -> int:
        return self.aggregates.target

    def payouts(self, index: int) -> PayoutRecord:
        return self.aggregates.payout(index)

    def bets(self, account: AccountId) -> Betting:
        return self.positions.get(account)

    # ---- account actions ----

    def bet(self, origin: Origin) -> None:
        """Stake the sender's free balance from the next round on."""
        who = ensure_signed(origin)
        index = self.index
        betting = self.positions.bet(who, index)
        self._commit({who: self.positions.bets.get(who)})
        self.actions_total.labels("bet").inc()
        if betting is None:
            self._emit(who, PositionCleared(round_index=index, account=who, reason="wiped_out"))
        else:
            self._emit(who, Staked(round_index=index, account=who, state=betting.state, balance=betting.balance))

    def unbet(self, origin: Origin) -> None:
        """Stop betting at the next round; funds stay locked one round more."""
        who = ensure_signed(origin)
        index = self.index
        betting = self.positions.unbet(who, index)
        self._commit({who: self.positions.bets.get(who)})
        self.actions_total.labels("unbet").inc()
        if betting is None:
            self._emit(who, PositionCleared(round_index=index, account=who, reason="wiped_out"))
        else:
            self._emit(
                who,
                Unstaked(
                    round_index=index,
                    account=who,
                    state=betting.state,
                    balance=betting.balance,
                    locked_until=betting.locked_until,
                ),
            )

    def collect(self, origin: Origin) -> bool:
        """Withdraw from the system; a no-op until idle and unlocked."""
        who = ensure_signed(origin)
        index = self.index
        released = self.positions.collect(who, index)
        self._commit({who: self.positions.bets.get(who)})
        self.actions_total.labels("collect").inc()
        self._emit(who, Collected(round_index=index, account=who, released=released))
        return released

    def contribute(self, value: int) -> None:
        """Add to the pot. The funds are assumed to be burned elsewhere."""
        if value < 0:
            raise ValueError(f"contribution must not be negative: {value}")
        self.aggregates.contribute(int(value))
        self._commit()
        self._emit("pot", PotContributed(round_index=self.index, value=int(value), pot=self.pot))

    def on_free_balance_zero(self, account: AccountId) -> None:
        """The currency reports the account emptied; drop its position."""
        self.positions.force_clear(account)
        self._commit({account: None})
        self._emit(account, PositionCleared(round_index=self.index, account=account, reason="free_balance_zero"))

    # ---- block hook ----

    def on_finalize(self, block: int) -> Optional[RoundOutcome]:
        before = (self.index, len(self.settlement.clock.prices))
        outcome = self.settlement.on_finalize(block)
        self.last_block = block
        if (self.index, len(self.settlement.clock.prices)) == before:
            if self.store is not None:
                self.store.mark_block(block)
            return None
        self.samples_total.inc()
        if outcome is None:
            self._commit()
            return None
        recorded: Dict[int, PayoutRecord] = {}
        if outcome.outcome != "skipped":
            recorded[outcome.index] = self.aggregates.payout(outcome.index)
        self._commit(payouts=recorded)
        self.rounds_total.labels(outcome.outcome).inc()
        self._emit(
            f"round:{outcome.index}",
            RoundSettled(
                round_index=outcome.index,
                outcome=outcome.outcome,
                mean=outcome.mean,
                target=outcome.target,
                total=outcome.total,
                pot=outcome.pot,
            ),
        )
        return outcome

    # ---- plumbing ----

    def _commit(
        self,
        bets: Optional[Dict[AccountId, Optional[Betting]]] = None,
        payouts: Optional[Dict[int, PayoutRecord]] = None,
    ) -> None:
        snapshot = self.aggregates.snapshot()
        if self.store is not None:
            self.store.commit(self.index, self.prices, snapshot, bets=bets, payouts=payouts, block=self.last_block)
        set_aggregate_gauges(snapshot, self.index)

    def _emit(self, key: str, event: BaseEvent) -> None:
        self._sequence += 1
        self.publisher(EventEnvelope(correlation_id=f"{key}:{event.round_index}", sequence=self._sequence, event=event))
