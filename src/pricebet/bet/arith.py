from __future__ import annotations

from .errors import ArithmeticOverflow

# Fixed-point shift used when splitting the pot.
PAYOUT_PRECISION_BITS = 32


def checked(value: int, bits: int) -> int:
    """Return `value` if it fits an unsigned `bits`-wide amount, else raise."""
    if value < 0 or value >> bits:
        raise ArithmeticOverflow(f"amount {value} does not fit in {bits} bits")
    return value


def payout_share(balance: int, total: int, pot: int, bits: int) -> int:
    """Share of `pot` owed to `balance` out of `total` staked."""
    scaled = checked(balance << PAYOUT_PRECISION_BITS, bits)
    return checked(scaled // total * pot, bits) >> PAYOUT_PRECISION_BITS


def accrued_outgoing(outgoing: int, total: int, pot: int, bits: int) -> int:
    """Outgoing stake grown by its proportional share of the pot."""
    grown = checked(total + pot, bits)
    return checked(outgoing * grown, bits) // total


def attenuate(target: int, attenuation: int, bits: int) -> int:
    """Raise `target` after a wipeout: `target / a * (a + 1)`, truncating."""
    return checked(target // attenuation * (attenuation + 1), bits)
