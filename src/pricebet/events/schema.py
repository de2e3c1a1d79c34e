from __future__ import annotations

from typing import Literal, Optional
from pydantic import BaseModel


# ---- Base + envelope ----

class BaseEvent(BaseModel):
    event_type: str
    round_index: int
    account: Optional[str] = None


class EventEnvelope(BaseModel):
    schema_version: str = "v1"
    correlation_id: str
    sequence: int = 0
    event: BaseEvent


# ---- Event types ----

class Staked(BaseEvent):
    event_type: Literal["staked"] = "staked"
    state: str
    balance: int


class Unstaked(BaseEvent):
    event_type: Literal["unstaked"] = "unstaked"
    state: str
    balance: int
    locked_until: Optional[int] = None


class Collected(BaseEvent):
    event_type: Literal["collected"] = "collected"
    released: bool


class PositionCleared(BaseEvent):
    event_type: Literal["position_cleared"] = "position_cleared"
    reason: str


class PotContributed(BaseEvent):
    event_type: Literal["pot_contributed"] = "pot_contributed"
    value: int
    pot: int


class RoundSettled(BaseEvent):
    event_type: Literal["round_settled"] = "round_settled"
    outcome: Literal["win", "wipeout", "skipped"]
    mean: Optional[int] = None
    target: int
    total: int
    pot: int
