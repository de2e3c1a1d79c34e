"""Betting core: position ledger, round settlement and the engine facade."""

from .engine import BetEngine, ensure_signed
from .errors import ArithmeticOverflow, BadOrigin, BetError, InvariantViolation
from .model import Betting

__all__ = [
    "ArithmeticOverflow",
    "BadOrigin",
    "BetEngine",
    "BetError",
    "Betting",
    "InvariantViolation",
    "ensure_signed",
]
