import pytest

from pricebet.bet.aggregates import StakeAggregates
from pricebet.bet.arith import accrued_outgoing, attenuate, checked, payout_share
from pricebet.bet.errors import ArithmeticOverflow, InvariantViolation


def test_win_conserves_stake_and_empties_pot():
    agg = StakeAggregates(target=120, total=100, pot=50, incoming=30, outgoing=40)
    agg.settle_win(mean=90, index=7)
    # accrued outgoing = 40 * 150 / 100 = 60
    assert agg.total == 100 + 50 + 30 - 60
    assert agg.pot == 0
    assert agg.incoming == 0 and agg.outgoing == 0
    assert agg.target == 90
    assert agg.payout(7) == (100, 50)


def test_wipeout_forfeits_outgoing_and_keeps_only_incoming():
    agg = StakeAggregates(target=120, total=100, pot=50, incoming=30, outgoing=40)
    agg.settle_wipeout(attenuation=10, index=3)
    assert agg.outgoing == 0
    assert agg.total == 30
    assert agg.incoming == 0
    assert agg.pot == 50
    assert agg.target == 132
    assert 3 in agg.payouts and agg.payout(3) is None


def test_idle_round_promotes_incoming_without_record():
    agg = StakeAggregates(target=120, incoming=10, pot=5)
    agg.settle_idle()
    assert agg.total == 10 and agg.incoming == 0 and agg.pot == 5
    assert agg.payouts == {}


def test_payout_history_is_append_only():
    agg = StakeAggregates(target=120, total=10)
    agg.settle_win(mean=100, index=0)
    agg.total = 10
    with pytest.raises(InvariantViolation):
        agg.settle_wipeout(attenuation=10, index=0)


def test_debit_below_zero_is_an_invariant_violation():
    agg = StakeAggregates(target=120, incoming=5)
    with pytest.raises(InvariantViolation):
        agg.sub_incoming(6)
    assert agg.incoming == 5
    with pytest.raises(InvariantViolation):
        agg.sub_outgoing(1)


def test_credit_past_amount_width_overflows():
    agg = StakeAggregates(target=120, amount_bits=64)
    agg.contribute((1 << 64) - 1)
    with pytest.raises(ArithmeticOverflow):
        agg.contribute(1)


def test_checked_bounds():
    assert checked(0, 64) == 0
    assert checked((1 << 64) - 1, 64) == (1 << 64) - 1
    with pytest.raises(ArithmeticOverflow):
        checked(1 << 64, 64)
    with pytest.raises(ArithmeticOverflow):
        checked(-1, 64)


def test_payout_share_overflow_detected():
    # balance << 32 no longer fits in 64 bits
    with pytest.raises(ArithmeticOverflow):
        payout_share(1 << 40, 1 << 40, 1, 64)
    assert payout_share(1 << 40, 1 << 40, 1, 128) == 1


def test_accrued_outgoing_and_attenuate():
    assert accrued_outgoing(20, 20, 10, 128) == 30
    assert accrued_outgoing(0, 7, 100, 128) == 0
    assert attenuate(120, 10, 128) == 132
    assert attenuate(132, 10, 128) == 143
