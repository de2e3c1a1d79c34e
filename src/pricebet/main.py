"""
Main entrypoint for pricebet.

What it does:
- Loads engine settings from `config/config.yaml` (plus env overrides).
- Starts the Prometheus metrics server.
- Restores round clock, aggregates, payout history and positions from SQLite.
- Acts as the block scheduler: calls `on_finalize` once per block, every
  `block_seconds`, in strictly increasing block order.

Where it is used:
- Invoked by `python -m pricebet.main`.

Environment:
- OFFLINE_DEMO=1: in-memory ledger with a few funded accounts and a synthetic
  price feed instead of ccxt; the demo accounts stake at startup.
  On restart the demo ledger is re-funded from the restored stake balances.
- MAX_BLOCKS: stop after this many blocks (default: run forever).
- START_BLOCK: first block number to finalize. Defaults to the block after the
  last one recorded in the state store (0 on a fresh store), so a restart
  resumes sampling at the same offset within the round.
- PROMETHEUS_PORT: metrics port (default 8000, 0 disables).
"""
import logging
import os
import time
from typing import Dict

from pricebet.bet.engine import BetEngine
from pricebet.config.loader import load_settings
from pricebet.ledger.ledger import InMemoryLedger
from pricebet.metrics.core import start_server_safe
from pricebet.oracle.static import RandomWalkOracle
from pricebet.store.sqlite_store import StateStore

DEMO_BALANCES = {"alice": 1_000, "bob": 2_000, "carol": 3_000}


def demo_balances(store: StateStore) -> Dict[str, int]:
    """Demo funding, with restored positions keeping their staked balance."""
    balances = dict(DEMO_BALANCES)
    snapshot = store.load()
    if snapshot is not None:
        for account, betting in snapshot.bets.items():
            balances[account] = betting.balance
    return balances


def main() -> None:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")
    settings = load_settings(os.getenv("PRICEBET_CONFIG", "config/config.yaml"))
    logging.info(
        f"period={settings.period} samples={settings.samples} "
        f"attenuation={settings.target_attenuation} state={settings.state_path}"
    )

    start_server_safe(int(os.getenv("PROMETHEUS_PORT", "8000")))

    store = StateStore(settings.state_path)
    offline = os.getenv("OFFLINE_DEMO", "0") == "1"
    if offline:
        logging.info("OFFLINE_DEMO=1: using in-memory ledger and synthetic prices")
        ledger = InMemoryLedger(demo_balances(store))
        oracle = RandomWalkOracle(start=settings.target, seed=int(os.getenv("DEMO_SEED", "7")))
        block_seconds = float(os.getenv("DEMO_BLOCK_SECONDS", "0"))
    else:
        # Live deployments plug their own Currency implementation in here.
        from pricebet.oracle.ccxt_feed import CcxtPriceOracle

        ledger = InMemoryLedger()
        oracle = CcxtPriceOracle(settings.oracle)
        block_seconds = settings.block_seconds

    engine = BetEngine.restore(settings, ledger, oracle, store)
    if offline:
        for account in DEMO_BALANCES:
            engine.bet(account)

    max_blocks = int(os.getenv("MAX_BLOCKS", "0"))
    start = os.getenv("START_BLOCK", "")
    if start:
        block = int(start)
    else:
        block = 0 if engine.last_block is None else engine.last_block + 1
    logging.info(f"starting at block {block} in round {engine.index}")
    processed = 0
    try:
        while max_blocks <= 0 or processed < max_blocks:
            outcome = engine.on_finalize(block)
            if outcome is not None and offline:
                engine.contribute(int(os.getenv("DEMO_POT_PER_ROUND", "100")))
                # bet is idempotent; this only re-enters accounts a wipeout dropped
                for account in DEMO_BALANCES:
                    engine.bet(account)
            block += 1
            processed += 1
            if block_seconds > 0:
                time.sleep(block_seconds)
    except KeyboardInterrupt:
        logging.info(f"interrupted; next run resumes at block {block}")
    logging.info(
        f"stopped at block {block}: round={engine.index} pot={engine.pot} total={engine.total} target={engine.target}"
    )


if __name__ == "__main__":
    main()
