# tests/test_transport.py

"""Transports – local inbox delivery, TCP wire form and a chat over TCP."""

import asyncio

import pytest

from causalchat.chat_message import ChatMessage, JoinGroup, PrintHistory, StartChat, signal_from_dict
from causalchat.config import ChatConfig
from causalchat.errors import UnknownPeerError
from causalchat.group import ChatGroup
from causalchat.transport import LocalTransport, TcpTransport


def test_local_transport_puts_into_inbox():
    async def scenario():
        transport = LocalTransport()
        inbox = asyncio.Queue()
        await transport.register("p0", inbox)
        await transport.send("p0", StartChat())
        return inbox.get_nowait(), transport.sent

    item, sent = asyncio.run(scenario())
    assert item == StartChat()
    assert sent == 1


def test_local_transport_unknown_target():
    async def scenario():
        await LocalTransport().send("nobody", StartChat())

    with pytest.raises(UnknownPeerError):
        asyncio.run(scenario())


def test_signal_dict_forms():
    message = ChatMessage("T", 3, 1, [2, 1, 0])
    assert message.clock == (2, 1, 0)
    assert message.to_dict() == {'type': 'chat', 'topic': 'T', 'seq': 3, 'sender_id': 1, 'clock': [2, 1, 0]}
    assert signal_from_dict(message.to_dict()) == message
    assert signal_from_dict({'type': 'join', 'members': ['a', 'b']}) == JoinGroup(('a', 'b'))
    assert signal_from_dict({'type': 'print'}) == PrintHistory()


def test_unknown_signal_type():
    with pytest.raises(ValueError):
        signal_from_dict({'type': 'gossip'})


def test_tcp_transport_delivers_signal():
    async def scenario():
        transport = TcpTransport()
        inbox = asyncio.Queue()
        address = await transport.register("p0", inbox)
        try:
            await transport.send("p0", ChatMessage("T", 0, 0, (1, 0)))
            return address, inbox.get_nowait()
        finally:
            await transport.close()

    address, item = asyncio.run(scenario())
    assert address.port > 0
    assert item == ChatMessage("T", 0, 0, (1, 0))


def test_tcp_transport_unknown_target():
    async def scenario():
        transport = TcpTransport()
        try:
            await transport.send("nobody", StartChat())
        finally:
            await transport.close()

    with pytest.raises(UnknownPeerError):
        asyncio.run(scenario())


def test_chat_over_tcp():
    async def scenario():
        config = ChatConfig(seed=9, max_latency=0.002)
        async with ChatGroup(["T", "T", None], config, transport=TcpTransport()) as group:
            await group.start_chat(0)
            await group.wait_quiescent()
            return group, await group.print_histories()

    group, lines = asyncio.run(scenario())
    chain = " ".join(f"T{n}" for n in range(10))
    assert lines == [f"00: {chain}", f"01: {chain}", f"02: {chain}"]
    assert group.check_causal_order() == []


@pytest.mark.parametrize("line", [
    b'{"type": "chat", "topic": "T", "seq": 0, "sender_id": 0, "clock": 5}\n',
    b'{"type": "chat", "topic": "T"}\n',
    b'not json\n',
])
def test_tcp_listener_survives_malformed_signal(line):
    async def scenario():
        transport = TcpTransport()
        inbox = asyncio.Queue()
        address = await transport.register("p0", inbox)
        try:
            reader, writer = await asyncio.open_connection(address.host, address.port)
            writer.write(line)
            await writer.drain()
            ack = await reader.readline()
            writer.close()
            await writer.wait_closed()

            # The listener keeps serving well-formed signals
            await transport.send("p0", StartChat())
            return ack, inbox.qsize(), inbox.get_nowait()
        finally:
            await transport.close()

    ack, queued, item = asyncio.run(scenario())
    assert ack == b""
    assert queued == 1
    assert item == StartChat()
