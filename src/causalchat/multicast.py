"""
Multicast dissemination of chat messages to the rest of the group.

Every call walks a fresh permutation of the targets and schedules one
fire-and-forget send per target after a random delay, so arrival order at
different peers varies from run to run.
"""
import asyncio
import logging
import random
from typing import List, Optional, Sequence, Set

from .errors import CausalChatError
from .transport import Transport


class MulticastSender:
    """Fan-out of one peer's messages to an immutable member snapshot."""

    def __init__(self, self_name: str, members: Sequence[str], transport: Transport,
                 rng: Optional[random.Random] = None,
                 min_latency: float = 0.0, max_latency: float = 0.01):
        if min_latency < 0 or max_latency < min_latency:
            raise ValueError(f"Invalid latency bounds: [{min_latency}, {max_latency}]")
        self.self_name = self_name
        self.targets = tuple(name for name in members if name != self_name)
        self.transport = transport
        self.rng = rng or random.Random()
        self.min_latency = min_latency
        self.max_latency = max_latency

        self._tasks: Set[asyncio.Task] = set()
        self.sends_scheduled = 0
        self.sends_failed = 0

        self.logger = logging.getLogger(f"CausalChatMulticast-{self_name}")

    def multicast(self, message) -> List[str]:
        """
        Schedule a send of `message` to every target and return the order used.
        Must be called from inside a running event loop.
        """
        loop = asyncio.get_running_loop()
        order = list(self.targets)
        self.rng.shuffle(order)

        for target in order:
            delay = self.rng.uniform(self.min_latency, self.max_latency)
            task = loop.create_task(self._send_later(target, message, delay))
            self._tasks.add(task)
            task.add_done_callback(self._tasks.discard)
            self.sends_scheduled += 1

        return order

    async def _send_later(self, target: str, message, delay: float) -> None:
        if delay > 0:
            await asyncio.sleep(delay)
        try:
            await self.transport.send(target, message)
        except (OSError, CausalChatError) as e:
            self.sends_failed += 1
            self.logger.warning(f"Failed to send to {target}: {e}")

    @property
    def in_flight(self) -> int:
        return len(self._tasks)

    async def drain(self) -> None:
        """Wait until every scheduled send has completed."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))

    def cancel(self) -> None:
        for task in list(self._tasks):
            task.cancel()
