# tests/conftest.py

"""Shared fixtures for the CausalChat tests.

Messages are built by hand with explicit clocks so that the delivery tests can
replay any arrival order. Async components are driven with asyncio.run from
plain synchronous tests.
"""

import random

import pytest

from causalchat.chat_message import ChatMessage


def make_message(sender_id, clock, topic="T", seq=0):
    """Build a chat message stamped with `clock`."""
    return ChatMessage(topic=topic, seq=seq, sender_id=sender_id, clock=tuple(clock))


def generate_causal_history(n_senders, group_size, n_messages, rng):
    """Simulate senders that see random earlier messages before sending.

    Returns messages in a valid causal send order. Each sender's clock is the
    join of its own sends and the clocks of the messages it chose to see, so
    every snapshot is downward closed as in a real run.
    """
    clocks = [[0] * group_size for _ in range(n_senders)]
    sent = []
    for seq in range(n_messages):
        sender = rng.randrange(n_senders)
        for seen in rng.sample(sent, min(len(sent), rng.randint(0, 2))):
            clocks[sender] = [max(a, b) for a, b in zip(clocks[sender], seen.clock)]
        clocks[sender][sender] += 1
        sent.append(make_message(sender, clocks[sender], topic=f"S{sender}", seq=seq))
    return sent


@pytest.fixture
def rng():
    """Seeded random source for reproducible arrival orders."""
    return random.Random(1234)


@pytest.fixture
def message_factory():
    return make_message


@pytest.fixture
def causal_history():
    return generate_causal_history
