from __future__ import annotations

import logging

import pytest

from tripwatch.bus import SubscriptionBus


def test_subscribe_delivers_current_value_immediately() -> None:
    state = {"value": 1}
    bus: SubscriptionBus[int] = SubscriptionBus("test", current=lambda: state["value"])
    seen: list[int] = []

    bus.subscribe(seen.append)
    assert seen == [1]

    state["value"] = 2
    bus.publish(2)
    assert seen == [1, 2]


def test_bus_without_current_waits_for_publish() -> None:
    bus: SubscriptionBus[str] = SubscriptionBus("alerts")
    seen: list[str] = []

    bus.subscribe(seen.append)
    assert seen == []

    bus.publish("a")
    assert seen == ["a"]


def test_unsubscribe_stops_delivery_and_is_idempotent() -> None:
    bus: SubscriptionBus[int] = SubscriptionBus("test")
    seen: list[int] = []

    unsubscribe = bus.subscribe(seen.append)
    bus.publish(1)
    unsubscribe()
    unsubscribe()
    bus.publish(2)

    assert seen == [1]
    assert len(bus) == 0


def test_unsubscribing_during_publish_does_not_skip_others() -> None:
    bus: SubscriptionBus[int] = SubscriptionBus("test")
    calls: list[str] = []
    unsubscribers = {}

    def first(value: int) -> None:
        calls.append("first")
        unsubscribers["first"]()

    def second(value: int) -> None:
        calls.append("second")

    unsubscribers["first"] = bus.subscribe(first)
    bus.subscribe(second)

    bus.publish(1)
    bus.publish(2)

    assert calls == ["first", "second", "second"]


def test_raising_subscriber_is_logged_and_others_still_notified(caplog: pytest.LogCaptureFixture) -> None:
    bus: SubscriptionBus[int] = SubscriptionBus("test", current=lambda: 0)
    seen: list[int] = []

    def broken(value: int) -> None:
        raise ValueError("boom")

    with caplog.at_level(logging.ERROR, logger="tripwatch.bus"):
        bus.subscribe(broken)
        bus.subscribe(seen.append)
        bus.publish(5)

    assert seen == [0, 5]
    assert len([r for r in caplog.records if r.name == "tripwatch.bus"]) == 2


def test_clear_removes_all_subscribers() -> None:
    bus: SubscriptionBus[int] = SubscriptionBus("test")
    seen: list[int] = []
    bus.subscribe(seen.append)
    bus.subscribe(seen.append)

    bus.clear()
    bus.publish(1)

    assert seen == []
