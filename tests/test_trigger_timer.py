from __future__ import annotations

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from keyspace_store.core.trigger_timer import TriggerTimer
from keyspace_store.util.enums import ListenerState
from keyspace_store.util.errors import ConfigurationError
from tests.helpers import POLL, settle, wait_until

pytestmark = [pytest.mark.redis]

PATTERN = "__keyspace@0__:n:*:trigger"


@pytest.fixture
def make_timer(fake_redis, sub_client):
    def _make(namespace: str = "n", **kw) -> TriggerTimer:
        return TriggerTimer(fake_redis, namespace, sub_client=sub_client, poll_timeout=POLL, **kw)

    return _make


@pytest.mark.asyncio
async def test_set_timeout_writes_trigger_key(make_timer, fake_redis):
    timer = make_timer()

    await timer.set_timeout("k", 1000)

    assert await fake_redis.get("n:k:trigger") == b""
    assert 0 < await fake_redis.pttl("n:k:trigger") <= 1000
    await timer.close()


@pytest.mark.asyncio
async def test_rearm_resets_ttl(make_timer, fake_redis):
    timer = make_timer()

    await timer.set_timeout("k", 1000)
    await timer.set_timeout("k", 60_000)

    assert await fake_redis.pttl("n:k:trigger") > 1000
    assert await fake_redis.keys("n:*") == [b"n:k:trigger"]
    await timer.close()


@pytest.mark.asyncio
async def test_subscribes_to_namespace_triggers(make_timer, pubsub):
    timer = make_timer()
    await timer.wait_listening()

    assert pubsub.psubscribed == [PATTERN]
    assert timer.namespace == "n:"
    await timer.close()


@pytest.mark.asyncio
async def test_db_selects_keyspace_channel(make_timer, pubsub):
    timer = make_timer(db=3)
    await timer.wait_listening()

    assert pubsub.psubscribed == ["__keyspace@3__:n:*:trigger"]
    await timer.close()


@pytest.mark.asyncio
async def test_expiry_becomes_one_timeout_with_bare_key(make_timer, pubsub):
    timer = make_timer()
    timeouts = []
    timer.on_timeout(timeouts.append)
    await timer.wait_listening()

    await timer.set_timeout("s:g:a", 10)
    await timer.set_timeout("s:g:a", 10)  # re-arm: still one expiry
    pubsub.publish(PATTERN, "__keyspace@0__:n:s:g:a:trigger", "expired")
    pubsub.publish(PATTERN, "__keyspace@0__:n:s:g:a:trigger", "del")
    await wait_until(lambda: timeouts)
    await settle()

    assert timeouts == ["s:g:a"]
    await timer.close()


@pytest.mark.asyncio
async def test_other_namespace_expiry_is_ignored(make_timer, pubsub):
    timer = make_timer()
    timeouts = []
    timer.on_timeout(timeouts.append)
    await timer.wait_listening()

    pubsub.publish("__keyspace@0__:m:*:trigger", "__keyspace@0__:m:k:trigger", "expired")
    await settle()

    assert timeouts == []
    await timer.close()


@pytest.mark.asyncio
async def test_listener_errors_bubble(make_timer, pubsub):
    errors = []
    pubsub.subscribe_error = RedisConnectionError("refused")
    timer = make_timer()
    timer.on_error(errors.append)

    await wait_until(lambda: errors)

    assert str(errors[0]) == "refused"
    await timer.close()


@pytest.mark.asyncio
async def test_listen_event_is_forwarded(make_timer):
    timer = make_timer()
    seen = []
    timer.events.on("listen", lambda: seen.append(True))

    await timer.wait_listening()
    await settle(1)

    assert seen == [True]
    await timer.close()


@pytest.mark.asyncio
async def test_set_timeout_failure_propagates(make_timer, fake_redis, monkeypatch):
    timer = make_timer()

    async def down(*args, **kwargs):
        raise RedisConnectionError("down")

    monkeypatch.setattr(fake_redis, "psetex", down)
    with pytest.raises(RedisConnectionError):
        await timer.set_timeout("k", 1000)
    await timer.close()


def test_empty_namespace_rejected(fake_redis, sub_client):
    with pytest.raises(ConfigurationError):
        TriggerTimer(fake_redis, "", sub_client=sub_client)


@pytest.mark.asyncio
async def test_close_stops_listener_and_owned_client(fake_redis, sub_client, pubsub):
    timer = TriggerTimer(fake_redis, "n", sub_client=sub_client, owns_sub_client=True, poll_timeout=POLL)
    await timer.wait_listening()

    await timer.close()

    assert timer.listener.state is ListenerState.STOPPED
    assert pubsub.punsubscribed == [PATTERN]
    assert sub_client.closed


@pytest.mark.asyncio
async def test_close_leaves_borrowed_client_open(make_timer, sub_client):
    timer = make_timer()
    await timer.wait_listening()

    await timer.close()

    assert not sub_client.closed
