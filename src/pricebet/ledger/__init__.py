"""Ledger package.

Public API:
- Currency: protocol for balances and fund locks used by the engine.
- InMemoryLedger: reference implementation for tests and the offline runner.
"""

from .ledger import Currency, InMemoryLedger, Lock  # re-export

__all__ = ["Currency", "InMemoryLedger", "Lock"]
