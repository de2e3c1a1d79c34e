from __future__ import annotations

from dataclasses import dataclass
from typing import Literal, Optional, Tuple

StateKind = Literal["idle", "began_at", "ending_at"]
Consolidated = Literal["idle", "about_to_begin", "just_began", "about_to_end"]
AccountId = str
# (total at stake, pot) for a win; None for a wipeout.
PayoutRecord = Optional[Tuple[int, int]]


@dataclass
class Betting:
    """Per-account betting position.

    `state_at` is the round index carried by `began_at` / `ending_at` and is
    ignored while idle. `balance` is only authoritative as of the round implied
    by the state; consolidation brings it up to date.
    """

    state: StateKind = "idle"
    state_at: int = 0
    locked_until: Optional[int] = None
    balance: int = 0

    def began_at(self, index: int) -> None:
        self.state = "began_at"
        self.state_at = index

    def ending_at(self, index: int) -> None:
        self.state = "ending_at"
        self.state_at = index

    def idle(self) -> None:
        self.state = "idle"
        self.state_at = 0

    def is_default(self) -> bool:
        return self.state == "idle" and self.locked_until is None and self.balance == 0


@dataclass
class BetResult:
    won: bool
    balance: int
