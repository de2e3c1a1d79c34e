from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, FrozenSet, Optional, Protocol

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Lock:
    amount: int
    until: Optional[int]
    reasons: FrozenSet[str]


class Currency(Protocol):
    """Balance and fund-lock operations the engine relies on."""

    def free_balance(self, account: str) -> int: ...

    def mint(self, account: str, amount: int) -> None: ...

    def slash(self, account: str, amount: int) -> int: ...

    def set_lock(self, lock_id: str, account: str, amount: int, until: Optional[int], reasons: FrozenSet[str]) -> None: ...

    def remove_lock(self, lock_id: str, account: str) -> None: ...


class InMemoryLedger:
    """Reference `Currency` holding free balances and named locks per account.

    Locks do not reduce the free balance; they only mark the funds as not
    withdrawable, which `is_liquid` reports.
    """

    def __init__(self, balances: Optional[Dict[str, int]] = None):
        self.balances: Dict[str, int] = {k: int(v) for k, v in (balances or {}).items()}
        self.locks: Dict[str, Dict[str, Lock]] = {}
        self.minted_total = 0
        self.slashed_total = 0

    def __repr__(self) -> str:
        return f"InMemoryLedger(accounts={len(self.balances)}, locked={len(self.locks)})"

    def free_balance(self, account: str) -> int:
        return self.balances.get(account, 0)

    def mint(self, account: str, amount: int) -> None:
        if amount <= 0:
            return
        self.balances[account] = self.free_balance(account) + amount
        self.minted_total += amount
        logger.debug(f"minted {amount} to {account}")

    def slash(self, account: str, amount: int) -> int:
        """Remove up to `amount`; returns how much was actually removed."""
        removed = min(max(amount, 0), self.free_balance(account))
        if removed:
            self.balances[account] = self.free_balance(account) - removed
            self.slashed_total += removed
            logger.debug(f"slashed {removed} from {account}")
        return removed

    def set_lock(self, lock_id: str, account: str, amount: int, until: Optional[int], reasons: FrozenSet[str]) -> None:
        self.locks.setdefault(account, {})[lock_id] = Lock(amount=amount, until=until, reasons=frozenset(reasons))

    def remove_lock(self, lock_id: str, account: str) -> None:
        held = self.locks.get(account)
        if not held:
            return
        held.pop(lock_id, None)
        if not held:
            del self.locks[account]

    def is_liquid(self, account: str) -> bool:
        return not self.locks.get(account)
