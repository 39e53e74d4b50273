"""
Transports that move signals between chat peers.

A transport knows each peer by name and delivers into that peer's inbox. It
makes no ordering promise across messages: each send is independent.
"""
import asyncio
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, Optional

from .chat_message import signal_from_dict
from .errors import UnknownPeerError


class Transport(ABC):
    """Interface the peers and the multicast sender rely on."""

    @abstractmethod
    async def register(self, name: str, inbox: asyncio.Queue) -> None:
        """Make `inbox` reachable under `name`."""
        pass

    @abstractmethod
    async def send(self, target: str, item: Any) -> None:
        """Hand `item` to the inbox registered as `target`."""
        pass

    async def close(self) -> None:
        pass


class LocalTransport(Transport):
    """In-process transport: every peer inbox lives in the same event loop."""

    def __init__(self):
        self.inboxes: Dict[str, asyncio.Queue] = {}
        self.sent = 0

    async def register(self, name: str, inbox: asyncio.Queue) -> None:
        self.inboxes[name] = inbox

    async def send(self, target: str, item: Any) -> None:
        inbox = self.inboxes.get(target)
        if inbox is None:
            raise UnknownPeerError(target)
        self.sent += 1
        await inbox.put(item)


@dataclass
class PeerAddress:
    """Where a peer's TCP listener can be reached."""
    name: str
    host: str
    port: int


class TcpTransport(Transport):
    """
    Newline-delimited JSON over TCP, one connection per signal.

    Every registered peer gets its own listener. The receiver answers with an
    ack line once the signal sits in the inbox, so a completed send means the
    signal has arrived.
    """

    def __init__(self, host: str = "127.0.0.1"):
        self.host = host
        self.addresses: Dict[str, PeerAddress] = {}
        self.servers: Dict[str, asyncio.AbstractServer] = {}
        self.logger = logging.getLogger("CausalChatTcpTransport")

    async def register(self, name: str, inbox: asyncio.Queue, port: int = 0) -> PeerAddress:
        """Start a listener for `name`; port 0 picks a free port."""
        async def handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
            await self._handle_connection(name, inbox, reader, writer)

        server = await asyncio.start_server(handle, self.host, port)
        bound_port = server.sockets[0].getsockname()[1]
        address = PeerAddress(name, self.host, bound_port)
        self.servers[name] = server
        self.addresses[name] = address
        self.logger.info(f"Peer {name} listening on {self.host}:{bound_port}")
        return address

    async def _handle_connection(self, name: str, inbox: asyncio.Queue,
                                 reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Decode one signal, queue it, acknowledge."""
        try:
            data = await reader.readline()
            if not data:
                return
            signal = signal_from_dict(json.loads(data.decode().strip()))
            await inbox.put(signal)
            writer.write(json.dumps({'type': 'ack'}).encode() + b'\n')
            await writer.drain()
        except (ValueError, KeyError, TypeError) as e:
            self.logger.error(f"Peer {name} received a malformed signal: {e}")
        finally:
            writer.close()
            await writer.wait_closed()

    async def send(self, target: str, item: Any) -> None:
        address: Optional[PeerAddress] = self.addresses.get(target)
        if address is None:
            raise UnknownPeerError(target)

        reader, writer = await asyncio.open_connection(address.host, address.port)
        try:
            writer.write(json.dumps(item.to_dict()).encode() + b'\n')
            await writer.drain()
            response = await reader.readline()
            if not response:
                raise ConnectionError(f"Peer {target} closed the connection without ack")
        finally:
            writer.close()
            await writer.wait_closed()

    async def close(self) -> None:
        for server in self.servers.values():
            server.close()
            await server.wait_closed()
        self.servers.clear()
