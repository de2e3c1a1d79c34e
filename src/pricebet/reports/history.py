"""
Export the payout history as a table.

Usage (venv):
  PYTHONPATH=src python -m pricebet.reports.history

Reads the SQLite state named in `config/config.yaml` and writes
`$REPORT_DIR/payouts.parquet` (default `reports/`).
"""

from __future__ import annotations

import os
from typing import Dict

import pandas as pd

from pricebet.bet.model import PayoutRecord
from pricebet.config.loader import load_settings
from pricebet.store.sqlite_store import StateStore

COLUMNS = ["round", "outcome", "total", "pot"]


def payouts_frame(payouts: Dict[int, PayoutRecord]) -> pd.DataFrame:
    """One row per recorded round, ordered by round index.

    Wipeouts carry no totals, so `total` and `pot` are None for them.
    """
    rows = []
    for index in sorted(payouts):
        record = payouts[index]
        if record is None:
            rows.append({"round": index, "outcome": "wipeout", "total": None, "pot": None})
        else:
            rows.append({"round": index, "outcome": "win", "total": record[0], "pot": record[1]})
    df = pd.DataFrame(rows, columns=COLUMNS, dtype=object)
    df["round"] = df["round"].astype("int64")
    return df


def write_parquet(payouts: Dict[int, PayoutRecord], base_dir: str = "reports") -> str:
    os.makedirs(base_dir, exist_ok=True)
    df = payouts_frame(payouts)
    # Amounts may exceed int64; keep them exact as decimal strings.
    for col in ("total", "pot"):
        df[col] = df[col].map(lambda v: None if pd.isna(v) else str(v))
    path = os.path.join(base_dir, "payouts.parquet")
    df.to_parquet(path)
    return path


def main() -> None:
    settings = load_settings()
    snapshot = StateStore(settings.state_path).load()
    payouts = snapshot.payouts if snapshot is not None else {}
    out = write_parquet(payouts, os.environ.get("REPORT_DIR", "reports"))
    print(f"Payout history written to: {out}")


if __name__ == "__main__":
    main()
