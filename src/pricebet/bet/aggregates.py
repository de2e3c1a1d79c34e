from __future__ import annotations

from typing import Dict, Optional, Tuple

from .arith import accrued_outgoing, attenuate, checked
from .errors import InvariantViolation
from .model import PayoutRecord


class StakeAggregates:
    """Process-wide stake counters shared by the position ledger and settlement.

    All writes go through the methods below so the non-negativity of pot,
    total, incoming and outgoing is enforced in one place. `payouts` is
    append-only: a round's entry is never rewritten.
    """

    def __init__(
        self,
        target: int,
        amount_bits: int = 128,
        pot: int = 0,
        total: int = 0,
        incoming: int = 0,
        outgoing: int = 0,
        payouts: Optional[Dict[int, PayoutRecord]] = None,
    ):
        self.bits = int(amount_bits)
        self.target = checked(int(target), self.bits)
        self.pot = checked(int(pot), self.bits)
        self.total = checked(int(total), self.bits)
        self.incoming = checked(int(incoming), self.bits)
        self.outgoing = checked(int(outgoing), self.bits)
        self.payouts: Dict[int, PayoutRecord] = dict(payouts or {})

    def __repr__(self) -> str:
        return (
            f"StakeAggregates(pot={self.pot}, total={self.total}, incoming={self.incoming}, "
            f"outgoing={self.outgoing}, target={self.target})"
        )

    def snapshot(self) -> Dict[str, int]:
        return {
            "pot": self.pot,
            "total": self.total,
            "incoming": self.incoming,
            "outgoing": self.outgoing,
            "target": self.target,
        }

    def _credit(self, name: str, value: int) -> None:
        setattr(self, name, checked(getattr(self, name) + value, self.bits))

    def _debit(self, name: str, value: int) -> None:
        current = getattr(self, name)
        if value > current:
            raise InvariantViolation(f"{name} would go negative: {current} - {value}")
        setattr(self, name, current - value)

    def contribute(self, value: int) -> None:
        self._credit("pot", value)

    def add_incoming(self, value: int) -> None:
        self._credit("incoming", value)

    def sub_incoming(self, value: int) -> None:
        self._debit("incoming", value)

    def add_outgoing(self, value: int) -> None:
        self._credit("outgoing", value)

    def sub_outgoing(self, value: int) -> None:
        self._debit("outgoing", value)

    def payout(self, index: int) -> PayoutRecord:
        return self.payouts.get(index)

    def _record(self, index: int, entry: PayoutRecord) -> None:
        if index in self.payouts:
            raise InvariantViolation(f"payout for round {index} already recorded")
        self.payouts[index] = entry

    def settle_idle(self) -> None:
        """Nobody was at stake: promote incoming without deciding the round."""
        self.total, self.incoming = self.incoming, 0

    def settle_win(self, mean: int, index: int) -> Tuple[int, int]:
        """Pay the pot into the stake and ratchet the target down to `mean`."""
        total, pot = self.total, self.pot
        accrued = accrued_outgoing(self.outgoing, total, pot, self.bits)
        grown = checked(total + pot + self.incoming, self.bits)
        if accrued > grown:
            raise InvariantViolation(f"accrued outgoing {accrued} exceeds stake {grown}")
        self.pot = 0
        self.target = mean
        self.total = grown - accrued
        self.incoming = 0
        self.outgoing = 0
        self._record(index, (total, pot))
        return total, pot

    def settle_wipeout(self, attenuation: int, index: int) -> None:
        """Forfeit outgoing stake and let the target recover upward."""
        self.target = attenuate(self.target, attenuation, self.bits)
        self.outgoing = 0
        self.total, self.incoming = self.incoming, 0
        self._record(index, None)
