"""
Position ledger: per-account betting state with lazy catch-up.

Settlement only records one `(total, pot)` entry per round. An account's own
balance is brought forward by `consolidate` the next time the account acts,
replaying every round it missed. The projected balance is pushed to the
currency collaborator (mint on gain, slash on loss) so the free balance always
matches the stake.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Optional

from ..ledger.ledger import Currency
from .aggregates import StakeAggregates
from .arith import checked, payout_share
from .model import AccountId, Betting, BetResult, Consolidated

logger = logging.getLogger(__name__)

LOCK_ID = "pricebet"
# Every withdraw reason except paying transaction fees.
LOCK_REASONS = frozenset({"transfer", "reserve", "tip"})


class PositionLedger:
    def __init__(
        self,
        aggregates: StakeAggregates,
        currency: Currency,
        bets: Optional[Dict[AccountId, Betting]] = None,
    ):
        self.aggregates = aggregates
        self.currency = currency
        self.bets: Dict[AccountId, Betting] = dict(bets or {})

    @property
    def bits(self) -> int:
        return self.aggregates.bits

    def get(self, who: AccountId) -> Betting:
        """Copy of the stored position (default position if none)."""
        return replace(self.bets.get(who, Betting()))

    def _store(self, who: AccountId, betting: Betting) -> None:
        if betting.is_default():
            self.bets.pop(who, None)
        else:
            self.bets[who] = betting

    def _remove(self, who: AccountId) -> None:
        self.bets.pop(who, None)
        self.currency.remove_lock(LOCK_ID, who)

    def _lock(self, who: AccountId) -> None:
        self.currency.set_lock(LOCK_ID, who, (1 << self.bits) - 1, None, LOCK_REASONS)

    def bet(self, who: AccountId, now: int) -> Optional[Betting]:
        """Join the next round (or cancel a pending exit).

        Returns the stored position, or None if it was wiped out and removed.
        """
        betting = self.get(who)
        cs = self.consolidate(now, who, betting)

        # From here the state is one of: idle, began_at(now), began_at(now + 1),
        # ending_at(now + 1).
        if betting.balance == 0 and cs != "idle":
            wiped = True
        elif cs == "idle":
            betting.began_at(now + 1)
            betting.balance = self.currency.free_balance(who)
            self.aggregates.add_incoming(betting.balance)
            wiped = betting.balance == 0
        elif cs in ("about_to_begin", "just_began"):
            # Already betting; re-reading the free balance would double count.
            wiped = betting.balance == 0
        else:
            # Exit was due at the start of the next round. The current round is
            # still at stake with the consolidated balance, not the free balance.
            betting.began_at(now)
            self.aggregates.sub_outgoing(betting.balance)
            wiped = betting.balance == 0

        if wiped:
            logger.info(f"{who} wiped out at round {now}; position removed")
            self._remove(who)
            return None
        self._store(who, betting)
        self._lock(who)
        return betting

    def unbet(self, who: AccountId, now: int) -> Optional[Betting]:
        """Leave at the next round boundary; cancels a bet not yet started."""
        betting = self.get(who)
        cs = self.consolidate(now, who, betting)

        if betting.balance == 0:
            self._remove(who)
            return None

        if cs == "just_began":
            betting.ending_at(now + 1)
            betting.locked_until = now + 2
            self.aggregates.add_outgoing(betting.balance)
        elif cs == "about_to_begin":
            betting.idle()
            self.aggregates.sub_incoming(betting.balance)
        self._store(who, betting)
        return betting

    def collect(self, who: AccountId, now: int) -> bool:
        """Release the account if idle and past its lock. Returns True if released."""
        betting = self.get(who)
        self.consolidate(now, who, betting)
        unlocked = betting.state == "idle" and (betting.locked_until is None or betting.locked_until <= now)
        if unlocked:
            self._remove(who)
        else:
            self._store(who, betting)
        return unlocked

    def force_clear(self, who: AccountId) -> None:
        """The account's free balance reached zero elsewhere; forget the position."""
        self.bets.pop(who, None)

    def consolidate(self, now: int, who: AccountId, betting: Betting) -> Consolidated:
        """Project `betting` forward to round `now`, mutating it in place."""
        if betting.state == "began_at" and betting.state_at < now:
            result = self.calculate_new_balance(betting.balance, betting.state_at, now)
            if result.won:
                betting.began_at(now)
                cs: Consolidated = "just_began"
            else:
                betting.idle()
                betting.locked_until = None
                cs = "idle"
        elif betting.state == "ending_at" and betting.state_at <= now:
            end = betting.state_at
            result = self.calculate_new_balance(betting.balance, end - 1, end)
            betting.idle()
            if not result.won:
                betting.locked_until = None
            cs = "idle"
        elif betting.state == "began_at":
            return "just_began" if betting.state_at == now else "about_to_begin"
        elif betting.state == "ending_at":
            return "about_to_end"
        else:
            return "idle"

        if result.balance > betting.balance:
            self.currency.mint(who, result.balance - betting.balance)
        elif result.balance < betting.balance:
            loss = betting.balance - result.balance
            removed = self.currency.slash(who, loss)
            if removed != loss:
                logger.warning(f"slash short for {who}: removed {removed} of {loss}")
        logger.debug(f"consolidated {who} to round {now}: {betting.balance} -> {result.balance} ({cs})")
        betting.balance = result.balance
        return cs

    def calculate_new_balance(self, balance: int, begin: int, end: int) -> BetResult:
        """Replay rounds `[begin, end)` against the payout history.

        A win adds the balance's share of that round's pot; the share is taken
        from the running balance so consecutive wins compound. The first
        wipeout stops the replay and halves the balance.
        """
        if balance == 0:
            return BetResult(won=False, balance=0)
        new_balance = balance
        for index in range(begin, end):
            record = self.aggregates.payout(index)
            if record is None:
                return BetResult(won=False, balance=new_balance >> 1)
            total_stake, pot = record
            reward = payout_share(new_balance, total_stake, pot, self.bits)
            new_balance = checked(new_balance + reward, self.bits)
        return BetResult(won=True, balance=new_balance)
