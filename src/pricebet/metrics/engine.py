from __future__ import annotations

from typing import Dict, Optional
import os
from prometheus_client import Counter, Gauge, REGISTRY

_events_total: Optional[Counter] = None
_bet_actions_total: Optional[Counter] = None
_rounds_settled_total: Optional[Counter] = None
_price_samples_total: Optional[Counter] = None
_aggregate_gauge: Optional[Gauge] = None
_round_index_gauge: Optional[Gauge] = None


class _NoOp:
    def labels(self, *args, **kwargs):
        return self
    def inc(self, *args, **kwargs):
        return None
    def set(self, *args, **kwargs):
        return None


def _existing(name: str):
    # Counters register as "<name>" and "<name>_total"; tests re-import modules.
    names = getattr(REGISTRY, "_names_to_collectors", {})
    return names.get(name) or names.get(f"{name}_total")


def _safe_counter(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Counter(name, doc, labelnames)
    except ValueError:
        coll = _existing(name)
        return coll if coll is not None else _NoOp()


def _safe_gauge(name: str, doc: str, labelnames=()):
    if os.getenv("DISABLE_PROMETHEUS", "0") == "1":
        return _NoOp()
    try:
        return Gauge(name, doc, labelnames)
    except ValueError:
        coll = _existing(name)
        return coll if coll is not None else _NoOp()


def get_events_total():
    global _events_total
    if _events_total is None:
        _events_total = _safe_counter("pricebet_events_total", "Pricebet events published", ["type"])
    return _events_total


def get_bet_actions_total():
    global _bet_actions_total
    if _bet_actions_total is None:
        _bet_actions_total = _safe_counter("bet_actions_total", "Account actions applied", ["action"])
    return _bet_actions_total


def get_rounds_settled_total():
    global _rounds_settled_total
    if _rounds_settled_total is None:
        _rounds_settled_total = _safe_counter("rounds_settled_total", "Rounds settled", ["outcome"])
    return _rounds_settled_total


def get_price_samples_total():
    global _price_samples_total
    if _price_samples_total is None:
        _price_samples_total = _safe_counter("price_samples_total", "Oracle prices sampled")
    return _price_samples_total


def get_aggregate_gauge():
    global _aggregate_gauge
    if _aggregate_gauge is None:
        _aggregate_gauge = _safe_gauge("bet_aggregate", "Shared stake aggregates", ["name"])
    return _aggregate_gauge


def get_round_index_gauge():
    global _round_index_gauge
    if _round_index_gauge is None:
        _round_index_gauge = _safe_gauge("bet_round_index", "Index of the current round")
    return _round_index_gauge


def set_aggregate_gauges(values: Dict[str, int], round_index: int) -> None:
    """Publish pot/total/incoming/outgoing/target and the round index."""
    gauge = get_aggregate_gauge()
    for name, value in values.items():
        gauge.labels(name=name).set(float(value))
    get_round_index_gauge().set(float(round_index))
