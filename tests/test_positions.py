import logging

from pricebet.bet.aggregates import StakeAggregates
from pricebet.bet.model import Betting
from pricebet.bet.positions import LOCK_ID, PositionLedger
from pricebet.ledger.ledger import InMemoryLedger


def make_ledger(payouts, balances=None):
    agg = StakeAggregates(target=120, amount_bits=128, payouts=payouts)
    currency = InMemoryLedger(balances or {"a": 10, "b": 10})
    return PositionLedger(agg, currency), agg, currency


def test_replay_adds_proportional_share_per_win():
    positions, _, _ = make_ledger({0: (20, 20), 1: (40, 20)})
    result = positions.calculate_new_balance(10, 0, 2)
    assert result.won is True
    # 10 + 10 * 20 / 20 = 20, then 20 + 20 * 20 / 40 = 30
    assert result.balance == 30


def test_multi_round_replay_equals_sequential_single_rounds():
    payouts = {3: (30, 10), 4: (37, 7), 5: (1_000, 333), 6: (9, 2)}
    positions, _, _ = make_ledger(payouts)
    lazy = positions.calculate_new_balance(17, 3, 7)

    step = 17
    for index in range(3, 7):
        one = positions.calculate_new_balance(step, index, index + 1)
        assert one.won
        step = one.balance
    assert lazy.won
    assert lazy.balance == step


def test_fixed_point_share_truncates():
    positions, _, _ = make_ledger({0: (30, 10)})
    # 10 * 10 / 30 = 3.33 -> 3
    assert positions.calculate_new_balance(10, 0, 1).balance == 13


def test_wipeout_stops_replay_and_halves():
    # Win at 0, wipeout at 1, a later win must not be applied.
    positions, _, _ = make_ledger({0: (10, 10), 1: None, 2: (10, 10)})
    result = positions.calculate_new_balance(10, 0, 3)
    assert result.won is False
    assert result.balance == 10


def test_missing_round_counts_as_wipeout():
    positions, _, _ = make_ledger({})
    result = positions.calculate_new_balance(9, 4, 5)
    assert result.won is False
    assert result.balance == 4


def test_zero_balance_is_wipeout_without_replay():
    positions, _, _ = make_ledger({0: (10, 10)})
    result = positions.calculate_new_balance(0, 0, 1)
    assert result.won is False and result.balance == 0


def test_consolidate_began_mints_winnings():
    positions, _, currency = make_ledger({0: (20, 20)})
    betting = Betting(state="began_at", state_at=0, balance=10)
    cs = positions.consolidate(1, "a", betting)
    assert cs == "just_began"
    assert betting.state == "began_at" and betting.state_at == 1
    assert betting.balance == 20
    assert currency.free_balance("a") == 20


def test_consolidate_began_wipeout_goes_idle_and_unlocks():
    positions, _, currency = make_ledger({0: None})
    betting = Betting(state="began_at", state_at=0, locked_until=5, balance=10)
    cs = positions.consolidate(1, "a", betting)
    assert cs == "idle"
    assert betting.state == "idle"
    assert betting.locked_until is None
    assert betting.balance == 5
    assert currency.free_balance("a") == 5


def test_consolidate_logs_when_ledger_cannot_cover_loss(caplog):
    positions, _, currency = make_ledger({0: None}, balances={"a": 2})
    betting = Betting(state="began_at", state_at=0, balance=10)
    with caplog.at_level(logging.WARNING, logger="pricebet.bet.positions"):
        positions.consolidate(1, "a", betting)
    assert betting.balance == 5
    assert currency.free_balance("a") == 0
    assert currency.slashed_total == 2
    assert any("removed 2 of 5" in rec.getMessage() for rec in caplog.records)

def test_consolidate_matured_exit_replays_last_round_only():
    positions, _, currency = make_ledger({2: (10, 10), 3: None})
    betting = Betting(state="ending_at", state_at=3, locked_until=4, balance=10)
    cs = positions.consolidate(5, "a", betting)
    assert cs == "idle"
    assert betting.balance == 20
    assert betting.locked_until == 4
    assert currency.free_balance("a") == 20


def test_consolidate_reports_pending_states_without_projection():
    positions, _, currency = make_ledger({})
    assert positions.consolidate(3, "a", Betting(state="began_at", state_at=3, balance=10)) == "just_began"
    assert positions.consolidate(3, "a", Betting(state="began_at", state_at=4, balance=10)) == "about_to_begin"
    assert positions.consolidate(3, "a", Betting(state="ending_at", state_at=4, balance=10)) == "about_to_end"
    assert positions.consolidate(3, "a", Betting()) == "idle"
    assert currency.minted_total == 0 and currency.slashed_total == 0


def test_bet_stakes_free_balance_into_incoming_and_locks():
    positions, agg, currency = make_ledger({})
    betting = positions.bet("a", 0)
    assert betting.state == "began_at" and betting.state_at == 1
    assert betting.balance == 10
    assert agg.incoming == 10
    assert LOCK_ID in currency.locks["a"]
    assert currency.locks["a"][LOCK_ID].amount == (1 << agg.bits) - 1


def test_bet_twice_leaves_aggregates_unchanged():
    positions, agg, _ = make_ledger({})
    positions.bet("a", 0)
    before = (agg.snapshot(), positions.get("a"))
    positions.bet("a", 0)
    assert (agg.snapshot(), positions.get("a")) == before


def test_unbet_just_began_schedules_exit_with_extra_lock_round():
    positions, agg, _ = make_ledger({}, balances={"a": 10})
    positions.bets["a"] = Betting(state="began_at", state_at=4, balance=10)
    betting = positions.unbet("a", 4)
    assert betting.state == "ending_at" and betting.state_at == 5
    assert betting.locked_until == 6
    assert agg.outgoing == 10


def test_collect_refused_until_lock_expires():
    positions, _, currency = make_ledger({}, balances={"a": 10})
    positions.bets["a"] = Betting(state="idle", locked_until=6, balance=10)
    currency.set_lock(LOCK_ID, "a", 10, None, frozenset())
    assert positions.collect("a", 5) is False
    assert "a" in positions.bets
    assert positions.collect("a", 6) is True
    assert "a" not in positions.bets
    assert currency.is_liquid("a")


def test_default_position_is_not_stored():
    positions, _, _ = make_ledger({})
    positions.unbet("nobody", 0)
    positions.collect("nobody", 0)
    assert positions.bets == {}
