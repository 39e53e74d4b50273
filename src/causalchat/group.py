"""
Bootstrap and supervision of a fixed chat group.
"""
import asyncio
import logging
import random
from typing import Dict, List, Optional, Sequence

from .chat_message import JoinGroup, PrintHistory, StartChat
from .config import ChatConfig
from .history import CausalOrderChecker, CausalViolation, HistoryLog
from .peer import ChatPeer
from .transport import LocalTransport, Transport


class ChatGroup:
    """
    Creates one peer per entry of `topics` (None for a silent listener),
    joins them into a group and drives the conversation.
    """

    def __init__(self, topics: Sequence[Optional[str]], config: Optional[ChatConfig] = None,
                 transport: Optional[Transport] = None):
        if not topics:
            raise ValueError("A chat group needs at least one peer")
        self.config = config or ChatConfig()
        self.transport = transport or LocalTransport()
        self.rng = random.Random(self.config.seed)

        self.peers: List[ChatPeer] = [
            ChatPeer(f"peer-{i:02d}", topic, self.transport, self.config,
                     rng=random.Random(self.rng.getrandbits(64)))
            for i, topic in enumerate(topics)
        ]
        self.tasks: List[asyncio.Task] = []
        self.logger = logging.getLogger("CausalChatGroup")

    @property
    def members(self) -> List[str]:
        return [peer.name for peer in self.peers]

    async def start(self) -> None:
        """Start the peer tasks and deliver the join-group signal to everyone."""
        for peer in self.peers:
            await self.transport.register(peer.name, peer.inbox)
        self.tasks = [asyncio.create_task(peer.run(), name=peer.name) for peer in self.peers]

        join = JoinGroup(tuple(self.members))
        for peer in self.peers:
            await self.transport.send(peer.name, join)
        await self.wait_quiescent()
        self.logger.info(f"Group of {len(self.peers)} peers ready")

    async def start_chat(self, *peer_ids: int) -> None:
        """Ask the given peers (all when none given) to open their topic."""
        targets = peer_ids or range(len(self.peers))
        for peer_id in targets:
            await self.transport.send(self.peers[peer_id].name, StartChat())

    def _raise_failures(self) -> None:
        for task in self.tasks:
            if task.done() and not task.cancelled() and task.exception() is not None:
                raise task.exception()

    async def _join_inboxes(self) -> None:
        joined = asyncio.ensure_future(asyncio.gather(*(peer.inbox.join() for peer in self.peers)))
        done, _ = await asyncio.wait([joined, *self.tasks], return_when=asyncio.FIRST_COMPLETED)
        if joined not in done:
            joined.cancel()
            self._raise_failures()

    async def wait_quiescent(self) -> None:
        """Wait until no peer has queued signals or in-flight sends."""
        while True:
            self._raise_failures()
            await asyncio.gather(*(peer.sender.drain() for peer in self.peers if peer.sender))
            await self._join_inboxes()
            self._raise_failures()
            if all(peer.is_idle for peer in self.peers):
                return

    async def print_histories(self) -> List[str]:
        """Have every peer render its history and return the lines in id order."""
        await self.wait_quiescent()
        for peer in self.peers:
            await self.transport.send(peer.name, PrintHistory())
        await self.wait_quiescent()
        return [peer.printouts[-1] for peer in self.peers]

    def histories(self) -> Dict[int, HistoryLog]:
        return {i: peer.history for i, peer in enumerate(self.peers)}

    def check_causal_order(self) -> List[CausalViolation]:
        return CausalOrderChecker().check_all(self.histories())

    async def close(self) -> None:
        for peer in self.peers:
            if peer.sender:
                peer.sender.cancel()
        for task in self.tasks:
            task.cancel()
        await asyncio.gather(*self.tasks, return_exceptions=True)
        await self.transport.close()

    async def __aenter__(self) -> 'ChatGroup':
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()
