"""
Configuration loader for pricebet.

What it does:
- Reads static engine settings from `config/config.yaml`.
- Applies environment overrides (`PRICEBET_STATE_PATH`, `PRICEBET_PERIOD`).
- Validates the resulting configuration using Pydantic models. An invalid
  configuration raises at load time and the engine is never started.

Where it is used:
- Called by `pricebet.main` to build an `EngineSettings` object for runtime.
- Tests construct `EngineSettings` directly.
"""

import os
import yaml
from typing import Any, Dict, Optional
from pydantic import BaseModel, field_validator, model_validator


class OracleSettings(BaseModel):
    """Where the live runner samples its spot price from."""
    exchange: str = "binance"
    symbol: str = "EUR/USDT"
    # Prices are integers; the ticker is multiplied by `scale` and truncated.
    scale: int = 100


class EngineSettings(BaseModel):
    """Round and target parameters, fixed once the engine is built."""
    period: int = 1000
    samples: int
    target_attenuation: int
    target: int
    amount_bits: int = 128
    state_path: str = "data/pricebet.sqlite"
    block_seconds: float = 6.0
    oracle: OracleSettings = OracleSettings()

    @field_validator("period", "samples")
    @classmethod
    def positive(cls, v, info):
        if v < 1:
            raise ValueError(f"{info.field_name} must be at least 1")
        return v

    @field_validator("target_attenuation")
    @classmethod
    def attenuation_above_one(cls, v):
        if v <= 1:
            raise ValueError("target_attenuation must be greater than one")
        return v

    @field_validator("target")
    @classmethod
    def non_negative(cls, v):
        if v < 0:
            raise ValueError("target must not be negative")
        return v

    @field_validator("amount_bits")
    @classmethod
    def wide_enough(cls, v):
        if v < 64:
            raise ValueError("amount_bits must be at least 64")
        return v

    @model_validator(mode="after")
    def samples_fit_period(self):
        # Sampling points are period // samples blocks apart; uneven periods are fine.
        if self.samples > self.period:
            raise ValueError(f"samples ({self.samples}) must not exceed period ({self.period})")
        return self


def load_settings(path: str = "config/config.yaml", overrides: Optional[Dict[str, Any]] = None) -> EngineSettings:
    """Load YAML config, apply env-var overrides, and return EngineSettings."""
    with open(path, "r") as f:
        config = yaml.safe_load(f) or {}
    engine = dict(config.get("engine", {}))
    state_path = os.getenv("PRICEBET_STATE_PATH", "")
    if state_path:
        engine["state_path"] = state_path
    period = os.getenv("PRICEBET_PERIOD", "")
    if period:
        engine["period"] = int(period)
    if "oracle" in config:
        engine["oracle"] = OracleSettings(**config["oracle"])
    if overrides:
        engine.update(overrides)
    return EngineSettings(**engine)
