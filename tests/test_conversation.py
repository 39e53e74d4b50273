# tests/test_conversation.py

"""ConversationPolicy – opening a topic, replying and the reply budget."""

from causalchat.causal_clock import VectorClock
from causalchat.conversation import ConversationPolicy
from causalchat.history import DELIVERED, SENT, HistoryLog


def make_policy(peer_id=0, topic="T", size=2, n_messages=5):
    outgoing = []
    policy = ConversationPolicy(peer_id, topic, VectorClock(size), HistoryLog(),
                                outgoing.append, n_messages=n_messages)
    return policy, outgoing


def test_start_conversation_sends_seq_zero():
    policy, outgoing = make_policy()
    message = policy.start_conversation()

    assert outgoing == [message]
    assert (message.topic, message.seq, message.sender_id) == ("T", 0, 0)
    assert message.clock == (1, 0)
    assert policy.history.pairs() == [("T", 0)]
    assert policy.history.entries[0].kind == SENT


def test_silent_listener_never_starts_or_replies(message_factory):
    policy, outgoing = make_policy(topic=None)
    assert policy.start_conversation() is None

    assert policy.on_deliver(message_factory(1, (0, 1), seq=0)) is None
    assert outgoing == []
    assert policy.history.pairs() == [("T", 0)]
    assert policy.history.entries[0].kind == DELIVERED


def test_reply_continues_the_topic(message_factory):
    policy, outgoing = make_policy(peer_id=1)
    policy.clock.merge((1, 0))
    reply = policy.on_deliver(message_factory(0, (1, 0), seq=0))

    assert (reply.topic, reply.seq, reply.sender_id) == ("T", 1, 1)
    assert reply.clock == (1, 1)
    assert outgoing == [reply]
    assert policy.history.labels() == ["T0", "T1"]


def test_other_topic_is_recorded_without_reply(message_factory):
    policy, outgoing = make_policy()
    assert policy.on_deliver(message_factory(1, (0, 1), topic="U", seq=3)) is None
    assert outgoing == []
    assert policy.history.labels() == ["U3"]


def test_budget_is_per_peer(message_factory):
    policy, outgoing = make_policy(n_messages=2)
    policy.send("T", 0)
    policy.on_deliver(message_factory(1, (0, 1), topic="T", seq=1))
    assert policy.sent_count == 2
    assert policy.budget_left == 0

    assert policy.on_deliver(message_factory(1, (0, 2), topic="T", seq=3)) is None
    assert len(outgoing) == 2
    assert policy.history.labels() == ["T0", "T1", "T2", "T3"]


def test_own_slot_tracks_sent_count():
    policy, _ = make_policy(peer_id=1, size=3)
    for seq in range(4):
        policy.send("T", seq)
        assert policy.clock[1] == policy.sent_count == seq + 1
    assert policy.clock.snapshot() == (0, 4, 0)
