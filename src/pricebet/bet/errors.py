"""Exceptions raised by the betting engine.

`BadOrigin` is raised at the boundary before any state is touched. The other
two mean the shared accounting can no longer be trusted and must stop the
process.
"""


class BetError(Exception):
    """Base class for betting engine errors."""


class BadOrigin(BetError):
    """The action was not submitted by an authenticated account."""


class ArithmeticOverflow(BetError):
    """An amount left the range of the configured amount type."""


class InvariantViolation(BetError):
    """A shared aggregate would have gone negative."""
