from __future__ import annotations

import asyncio

import pytest

from keyspace_store.util.events import EventEmitter, proxy_event

pytestmark = [pytest.mark.unit]


def test_handlers_run_in_registration_order():
    em = EventEmitter("expired")
    calls = []
    em.on("expired", lambda k: calls.append(("a", k)))
    em.on("expired", lambda k: calls.append(("b", k)))

    assert em.emit("expired", "k") is True
    assert calls == [("a", "k"), ("b", "k")]


def test_emit_without_handlers_returns_false():
    assert EventEmitter("timeout").emit("timeout", "k") is False


def test_unknown_event_names_rejected():
    em = EventEmitter("timeout", owner="timer")
    with pytest.raises(ValueError, match="timer"):
        em.on("timout", print)
    with pytest.raises(ValueError):
        em.emit("expired")


def test_off_removes_handler():
    em = EventEmitter("error")
    seen = []
    em.on("error", seen.append)
    em.off("error", seen.append)
    em.off("error", seen.append)

    assert em.listener_count("error") == 0


def test_unhandled_error_is_logged(caplog):
    em = EventEmitter("error", owner="redis_store")

    with caplog.at_level("ERROR"):
        em.emit("error", RuntimeError("lost connection"))

    assert "redis_store.error.unhandled" in caplog.text
    assert "lost connection" in caplog.text


def test_proxy_event_forwards_under_new_name():
    source = EventEmitter("expired")
    target = EventEmitter("timeout")
    got = []
    target.on("timeout", got.append)
    source.on("expired", proxy_event(target, "timeout"))

    source.emit("expired", "k")

    assert got == ["k"]


@pytest.mark.asyncio
async def test_async_handler_failures_are_logged(caplog):
    em = EventEmitter("timeout", owner="timer")

    async def broken(key):
        raise RuntimeError("refresh failed")

    em.on("timeout", broken)
    with caplog.at_level("ERROR"):
        em.emit("timeout", "k")
        await asyncio.sleep(0.01)

    assert "timer.timeout.handler_failed" in caplog.text


def test_failing_handler_is_logged_and_others_still_run(caplog):
    em = EventEmitter("error", owner="timer")
    seen = []

    def broken(err):
        raise RuntimeError("handler bug")

    em.on("error", broken)
    em.on("error", seen.append)
    with caplog.at_level("ERROR"):
        assert em.emit("error", "boom") is True

    assert seen == ["boom"]
    assert "timer.error.handler_failed" in caplog.text


def test_failing_handler_does_not_escape_proxy():
    source = EventEmitter("expired")
    target = EventEmitter("timeout")
    got = []

    def broken(key):
        raise RuntimeError("handler bug")

    target.on("timeout", broken)
    source.on("expired", proxy_event(target, "timeout"))
    source.on("expired", got.append)

    source.emit("expired", "k")

    assert got == ["k"]
