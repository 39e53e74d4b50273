# tests/test_multicast.py

"""MulticastSender – fan-out targets, permuted order and failure handling."""

import asyncio
import logging
import random

import pytest

from causalchat.errors import UnknownPeerError
from causalchat.multicast import MulticastSender
from causalchat.transport import Transport

MEMBERS = ("p0", "p1", "p2", "p3", "p4")


class RecordingTransport(Transport):
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    async def register(self, name, inbox):
        pass

    async def send(self, target, item):
        if target in self.fail_for:
            raise UnknownPeerError(target)
        self.sent.append((target, item))


def test_sends_to_everyone_but_self():
    async def scenario():
        transport = RecordingTransport()
        sender = MulticastSender("p2", MEMBERS, transport, rng=random.Random(3), max_latency=0.0)
        order = sender.multicast("hello")
        await sender.drain()
        return order, transport.sent

    order, sent = asyncio.run(scenario())
    assert sorted(order) == ["p0", "p1", "p3", "p4"]
    assert sorted(target for target, _ in sent) == ["p0", "p1", "p3", "p4"]
    assert all(item == "hello" for _, item in sent)


def test_zero_latency_sends_follow_the_permutation():
    async def scenario():
        transport = RecordingTransport()
        sender = MulticastSender("p0", MEMBERS, transport, rng=random.Random(11), max_latency=0.0)
        order = sender.multicast("m")
        await sender.drain()
        return order, [target for target, _ in transport.sent]

    order, targets = asyncio.run(scenario())
    assert targets == order


def test_order_changes_between_calls():
    async def scenario():
        sender = MulticastSender("p0", MEMBERS, RecordingTransport(), rng=random.Random(5), max_latency=0.0)
        orders = [tuple(sender.multicast(i)) for i in range(20)]
        await sender.drain()
        return orders

    orders = asyncio.run(scenario())
    assert len(set(orders)) > 1
    # Member snapshot is untouched by the shuffles
    assert all(sorted(order) == ["p1", "p2", "p3", "p4"] for order in orders)


def test_same_seed_gives_same_order():
    async def orders(seed):
        sender = MulticastSender("p0", MEMBERS, RecordingTransport(), rng=random.Random(seed), max_latency=0.0)
        result = [sender.multicast(i) for i in range(3)]
        await sender.drain()
        return result

    assert asyncio.run(orders(42)) == asyncio.run(orders(42))


def test_failed_send_is_logged_not_raised(caplog):
    async def scenario():
        transport = RecordingTransport(fail_for={"p1"})
        sender = MulticastSender("p0", ("p0", "p1", "p2"), transport, max_latency=0.0)
        sender.multicast("m")
        await sender.drain()
        return sender, transport

    with caplog.at_level(logging.WARNING):
        sender, transport = asyncio.run(scenario())

    assert sender.sends_failed == 1
    assert sender.sends_scheduled == 2
    assert [target for target, _ in transport.sent] == ["p2"]
    assert "Failed to send to p1" in caplog.text


def test_drain_waits_for_latency():
    async def scenario():
        transport = RecordingTransport()
        sender = MulticastSender("p0", ("p0", "p1"), transport, min_latency=0.01, max_latency=0.02)
        sender.multicast("m")
        assert sender.in_flight == 1
        assert transport.sent == []
        await sender.drain()
        return sender.in_flight, len(transport.sent)

    assert asyncio.run(scenario()) == (0, 1)


def test_invalid_latency_bounds():
    with pytest.raises(ValueError):
        MulticastSender("p0", MEMBERS, RecordingTransport(), min_latency=0.5, max_latency=0.1)
