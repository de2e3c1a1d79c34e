import json
import logging

import redis

from pricebet.events import bus
from pricebet.events.schema import EventEnvelope, RoundSettled, Staked


class _FakeRedis:
    def __init__(self, fail_streams=()):
        self.entries = []
        self.fail_streams = set(fail_streams)

    def xadd(self, stream, fields):
        if stream in self.fail_streams:
            raise redis.ConnectionError("down")
        self.entries.append((stream, fields))


def test_publish_writes_stream_and_logs(monkeypatch, caplog):
    fake = _FakeRedis()
    monkeypatch.setattr(bus, "_get_redis", lambda: fake)
    env = EventEnvelope(correlation_id="1:0", event=Staked(round_index=0, account="1", state="began_at", balance=10))
    with caplog.at_level(logging.INFO, logger="pricebet.events"):
        bus.publish(env)
    assert len(fake.entries) == 1
    stream, fields = fake.entries[0]
    assert stream == bus.STREAM_EVENTS
    payload = json.loads(fields["json"])
    assert payload["event"]["event_type"] == "staked"
    assert payload["event"]["balance"] == 10
    assert any("staked" in rec.getMessage() for rec in caplog.records)


def test_publish_falls_back_to_dlq_when_stream_fails(monkeypatch):
    fake = _FakeRedis(fail_streams={bus.STREAM_EVENTS})
    monkeypatch.setattr(bus, "_get_redis", lambda: fake)
    env = EventEnvelope(
        correlation_id="round:3",
        event=RoundSettled(round_index=3, outcome="wipeout", target=132, total=10, pot=0),
    )
    bus.publish(env)
    assert [s for s, _ in fake.entries] == [bus.STREAM_DLQ]


def test_publish_never_raises_when_redis_is_down(monkeypatch):
    fake = _FakeRedis(fail_streams={bus.STREAM_EVENTS, bus.STREAM_DLQ})
    monkeypatch.setattr(bus, "_get_redis", lambda: fake)
    env = EventEnvelope(correlation_id="x", event=Staked(round_index=0, account="1", state="idle", balance=0))
    bus.publish(env)
    assert fake.entries == []


def test_encode_keeps_envelope_fields():
    env = EventEnvelope(correlation_id="c", sequence=4, event=Staked(round_index=2, account="a", state="began_at", balance=5))
    payload = json.loads(bus.encode(env))
    assert payload["schema_version"] == "v1"
    assert payload["sequence"] == 4
    assert payload["event"]["round_index"] == 2


def test_bus_only_exposes_the_publishing_side():
    assert callable(bus.publish)
    assert not hasattr(bus, "consume")
