"""
Application-level reaction to delivered chat messages.
"""
import logging
from typing import Any, Callable, Optional

from .causal_clock import VectorClock
from .chat_message import ChatMessage
from .history import HistoryLog

N_MESSAGES = 5


class ConversationPolicy:
    """
    Keeps a topic going: a peer subscribed to a topic answers every delivered
    message on that topic with the next sequence number, until it has sent
    `n_messages` messages in total. A peer without a topic only listens.
    """

    def __init__(self, peer_id: int, topic: Optional[str], clock: VectorClock,
                 history: HistoryLog, multicast: Callable[[ChatMessage], Any],
                 n_messages: int = N_MESSAGES):
        self.peer_id = peer_id
        self.topic = topic
        self.clock = clock
        self.history = history
        self.multicast = multicast
        self.n_messages = n_messages
        self.sent_count = 0

        self.logger = logging.getLogger(f"CausalChatPeer-{peer_id:02d}")

    @property
    def budget_left(self) -> int:
        return max(0, self.n_messages - self.sent_count)

    def start_conversation(self) -> Optional[ChatMessage]:
        """Open the subscribed topic with message 0."""
        if self.topic is None:
            self.logger.info(f"Peer {self.peer_id:02d} has no topic, nothing to start")
            return None
        return self.send(self.topic, 0)

    def on_deliver(self, message: ChatMessage) -> Optional[ChatMessage]:
        """Record a delivered message and reply to it if it is on our topic."""
        self.history.record_delivered(message)

        if self.topic is not None and message.topic == self.topic and self.sent_count < self.n_messages:
            return self.send(message.topic, message.seq + 1)
        return None

    def send(self, topic: str, seq: int) -> ChatMessage:
        """Stamp a new message with our clock and multicast it."""
        self.sent_count += 1
        self.clock.increment(self.peer_id)
        message = ChatMessage(topic=topic, seq=seq, sender_id=self.peer_id, clock=self.clock.snapshot())

        self.logger.info(f"{self.peer_id:02d}: {topic}{seq:02d}")
        self.multicast(message)
        self.history.record_sent(message)
        return message
