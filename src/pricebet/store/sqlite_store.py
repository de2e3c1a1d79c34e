from __future__ import annotations

import os
import sqlite3
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ..bet.model import AccountId, Betting, PayoutRecord


# Amounts are TEXT so any configured width round-trips exactly.
DDL = """
CREATE TABLE IF NOT EXISTS meta (
  key TEXT PRIMARY KEY,
  value TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS prices (
  seq INTEGER PRIMARY KEY,
  price TEXT NOT NULL
);
CREATE TABLE IF NOT EXISTS payouts (
  round_index INTEGER PRIMARY KEY,
  total TEXT,
  pot TEXT
);
CREATE TABLE IF NOT EXISTS bets (
  account TEXT PRIMARY KEY,
  state TEXT NOT NULL,
  state_at INTEGER NOT NULL,
  locked_until INTEGER,
  balance TEXT NOT NULL
);
"""

AGGREGATE_KEYS = ("pot", "total", "incoming", "outgoing", "target")


@dataclass
class Snapshot:
    index: int
    prices: List[int]
    aggregates: Dict[str, int]
    payouts: Dict[int, PayoutRecord] = field(default_factory=dict)
    bets: Dict[AccountId, Betting] = field(default_factory=dict)
    # Last block passed to on_finalize; None until the first block runs.
    last_block: Optional[int] = None


class StateStore:
    def __init__(self, path: str = "data/pricebet.sqlite"):
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        self.path = path
        with sqlite3.connect(self.path) as con:
            con.executescript(DDL)

    def commit(
        self,
        index: int,
        prices: List[int],
        aggregates: Dict[str, int],
        bets: Optional[Dict[AccountId, Optional[Betting]]] = None,
        payouts: Optional[Dict[int, PayoutRecord]] = None,
        block: Optional[int] = None,
    ) -> None:
        """Write one action's or one block's changes in a single transaction.

        `bets` maps touched accounts to their position, or None if removed.
        `block` is the block being finalized, if any.
        """
        with sqlite3.connect(self.path) as con:
            meta = [("index", str(index))] + [(k, str(aggregates[k])) for k in AGGREGATE_KEYS]
            if block is not None:
                meta.append(("last_block", str(block)))
            con.executemany("INSERT OR REPLACE INTO meta(key, value) VALUES (?, ?)", meta)
            con.execute("DELETE FROM prices")
            con.executemany(
                "INSERT INTO prices(seq, price) VALUES (?, ?)",
                [(i, str(p)) for i, p in enumerate(prices)],
            )
            for round_index, record in (payouts or {}).items():
                total, pot = (str(record[0]), str(record[1])) if record is not None else (None, None)
                con.execute(
                    "INSERT INTO payouts(round_index, total, pot) VALUES (?, ?, ?)",
                    (round_index, total, pot),
                )
            for account, betting in (bets or {}).items():
                if betting is None:
                    con.execute("DELETE FROM bets WHERE account = ?", (account,))
                    continue
                con.execute(
                    "INSERT OR REPLACE INTO bets(account, state, state_at, locked_until, balance) VALUES (?,?,?,?,?)",
                    (account, betting.state, betting.state_at, betting.locked_until, str(betting.balance)),
                )

    def mark_block(self, block: int) -> None:
        """Record a finalized block that changed nothing else."""
        with sqlite3.connect(self.path) as con:
            con.execute("INSERT OR REPLACE INTO meta(key, value) VALUES ('last_block', ?)", (str(block),))

    def load(self) -> Optional[Snapshot]:
        """Return the persisted state, or None for a fresh database."""
        with sqlite3.connect(self.path) as con:
            meta = dict(con.execute("SELECT key, value FROM meta").fetchall())
            if "index" not in meta:
                return None
            prices = [int(p) for (p,) in con.execute("SELECT price FROM prices ORDER BY seq")]
            payouts: Dict[int, PayoutRecord] = {}
            for round_index, total, pot in con.execute("SELECT round_index, total, pot FROM payouts"):
                payouts[int(round_index)] = (int(total), int(pot)) if total is not None else None
            bets: Dict[AccountId, Betting] = {}
            for account, state, state_at, locked_until, balance in con.execute(
                "SELECT account, state, state_at, locked_until, balance FROM bets"
            ):
                bets[account] = Betting(
                    state=state,
                    state_at=int(state_at),
                    locked_until=int(locked_until) if locked_until is not None else None,
                    balance=int(balance),
                )
        return Snapshot(
            index=int(meta["index"]),
            prices=prices,
            aggregates={k: int(meta[k]) for k in AGGREGATE_KEYS},
            payouts=payouts,
            bets=bets,
            last_block=int(meta["last_block"]) if "last_block" in meta else None,
        )
