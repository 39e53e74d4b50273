"""
Causal delivery engine.

A message from sender `s` stamped with clock `V` is deliverable at a peer with
local clock `L` when:

    V[s] == L[s] + 1            it is the next message expected from s
    V[i] <= L[i] for i != s     s had seen nothing that this peer has not

Messages that fail the check are buffered. Every delivery is followed by a
drain of the buffer, so a chain of buffered dependants is released as soon as
its head arrives.
"""
import logging
from collections import deque
from typing import Callable, Deque, Dict, List, Optional

from .causal_buffer import CausalBuffer
from .causal_clock import VectorClock
from .chat_message import ChatMessage

DeliverCallback = Callable[[ChatMessage], None]


class DeliveryEngine:
    """
    Decides when incoming messages may be handed to the application.

    The engine shares `clock` with its owner: sends made from inside the
    delivery callback increment the same clock the predicate reads.
    """

    def __init__(self, peer_id: int, clock: VectorClock, on_deliver: DeliverCallback,
                 buffer: Optional[CausalBuffer] = None):
        self.peer_id = peer_id
        self.clock = clock
        self.on_deliver = on_deliver
        self.buffer = buffer if buffer is not None else CausalBuffer()

        self.delivered_count = 0
        self.buffered_count = 0
        self.stale_count = 0

        self.logger = logging.getLogger(f"CausalChatDelivery-{peer_id}")

    def can_deliver(self, message: ChatMessage) -> bool:
        """Check both causal delivery conditions against the local clock."""
        return self.clock.can_deliver(message.sender_id, message.clock)

    def is_stale(self, message: ChatMessage) -> bool:
        """True if the sender slot is not ahead of ours, so the message can never be delivered."""
        return message.clock[message.sender_id] <= self.clock[message.sender_id]

    def receive(self, message: ChatMessage) -> List[ChatMessage]:
        """
        Process one incoming message.

        Returns the messages delivered during this call, in delivery order.
        An empty list means the message was buffered. A clock from a group of
        another size raises ClockSizeMismatch, and a sender id outside the group
        raises MalformedMessageError, before anything is touched.
        """
        if not self.can_deliver(message):
            self._hold(message)
            return []

        delivered: List[ChatMessage] = []
        work: Deque[ChatMessage] = deque([message])
        while work:
            current = work.popleft()
            self.clock.merge(current.clock)
            self.delivered_count += 1
            delivered.append(current)
            self.logger.debug(f"Delivered {current.label} from peer {current.sender_id}, clock={self.clock}")
            self.on_deliver(current)

            released = self.buffer.extract_first(self.can_deliver)
            if released is not None:
                self.logger.debug(f"Released {released.label} from buffer ({len(self.buffer)} left)")
                work.append(released)

        return delivered

    def _hold(self, message: ChatMessage) -> None:
        if self.is_stale(message):
            self.stale_count += 1
            self.logger.warning(
                f"Buffering stale message {message.label} from peer {message.sender_id} "
                f"(clock={list(message.clock)}, local={self.clock}); it can never be delivered"
            )
        else:
            self.logger.debug(
                f"Buffering {message.label} from peer {message.sender_id} "
                f"(clock={list(message.clock)}, local={self.clock})"
            )
        self.buffer.add(message)
        self.buffered_count += 1

    def stats(self) -> Dict[str, int]:
        """Get delivery statistics."""
        return {
            'delivered': self.delivered_count,
            'buffered': self.buffered_count,
            'stale': self.stale_count,
            'pending': len(self.buffer),
        }
