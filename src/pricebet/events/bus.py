from __future__ import annotations

import json
import os
import logging

import redis

from .schema import EventEnvelope
from ..metrics.engine import get_events_total


STREAM_EVENTS = os.getenv("EVENTS_STREAM", "pricebet.events")
STREAM_DLQ = os.getenv("EVENTS_DLQ", "pricebet.dlq")
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")

log = logging.getLogger("pricebet.events")


def _get_redis():
    return redis.Redis.from_url(REDIS_URL, decode_responses=True, socket_connect_timeout=0.5)


def encode(env: EventEnvelope) -> str:
    return json.dumps({
        "schema_version": env.schema_version,
        "correlation_id": env.correlation_id,
        "sequence": env.sequence,
        "event": env.event.model_dump(),
    }, separators=(",", ":"))


def publish(env: EventEnvelope) -> None:
    """Publish an event to Redis Streams and log a single-line JSON.

    Notification is best-effort: settlement state is already committed when
    this runs, so a Redis outage only costs the stream entry.
    """
    get_events_total().labels(env.event.event_type).inc()
    line = encode(env)
    try:
        _get_redis().xadd(STREAM_EVENTS, {"json": line})
    except redis.RedisError as e:
        log.debug(f"event stream unavailable: {e}")
        try:
            _get_redis().xadd(STREAM_DLQ, {"json": line})
        except redis.RedisError:
            pass
    log.info(line)
