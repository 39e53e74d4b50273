"""
A chat peer: one participant of the causal multicast group.

Each peer runs as its own asyncio task and owns all of its state. Signals
arrive through a private inbox and are handled strictly one at a time, so a
chat message, its buffer drain and any reply it triggers finish before the
next signal is looked at.
"""
import asyncio
import logging
import random
from typing import Any, Callable, Dict, List, Optional, Tuple

from .causal_buffer import CausalBuffer
from .causal_clock import VectorClock
from .chat_message import ChatMessage, JoinGroup, PrintHistory, StartChat
from .config import ChatConfig
from .conversation import ConversationPolicy
from .delivery import DeliveryEngine
from .errors import NotJoinedError
from .history import HistoryLog
from .multicast import MulticastSender
from .transport import Transport


class ChatPeer:
    """
    Participant in a causally ordered group chat.
    """

    def __init__(self, name: str, topic: Optional[str], transport: Transport,
                 config: Optional[ChatConfig] = None, rng: Optional[random.Random] = None):
        self.name = name
        self.topic = topic
        self.transport = transport
        self.config = config or ChatConfig()
        self.rng = rng or random.Random(self.config.seed)

        self.inbox: asyncio.Queue = asyncio.Queue()
        self.history = HistoryLog()
        self.printouts: List[str] = []

        # Set up by the join-group signal
        self.peer_id: Optional[int] = None
        self.members: Tuple[str, ...] = ()
        self.clock: Optional[VectorClock] = None
        self.sender: Optional[MulticastSender] = None
        self.policy: Optional[ConversationPolicy] = None
        self.engine: Optional[DeliveryEngine] = None

        self.logger = logging.getLogger(f"CausalChatPeer-{name}")

    @property
    def joined(self) -> bool:
        return self.engine is not None

    @property
    def sent_count(self) -> int:
        return self.policy.sent_count if self.policy else 0

    @property
    def buffer(self) -> Optional[CausalBuffer]:
        return self.engine.buffer if self.engine else None

    @property
    def is_idle(self) -> bool:
        """Nothing queued and no outgoing send still in flight."""
        in_flight = self.sender.in_flight if self.sender else 0
        return self.inbox.empty() and in_flight == 0

    async def run(self) -> None:
        """Process inbox signals until cancelled."""
        while True:
            signal = await self.inbox.get()
            try:
                self.handle(signal)
            except Exception:
                self.logger.exception(f"Peer {self.name} failed handling {signal!r}")
                raise
            finally:
                self.inbox.task_done()

    def handle(self, signal: Any) -> Any:
        """Route a signal to its handler."""
        handlers: Dict[type, Callable[[Any], Any]] = {
            JoinGroup: self._handle_join_group,
            StartChat: self._handle_start_chat,
            ChatMessage: self._handle_chat_message,
            PrintHistory: self._handle_print_history,
        }
        handler = handlers.get(type(signal))
        if handler is None:
            raise TypeError(f"Peer {self.name} cannot handle {type(signal).__name__}")
        return handler(signal)

    # --- Signal Handlers ---

    def _handle_join_group(self, signal: JoinGroup) -> None:
        members = tuple(signal.members)
        if self.name not in members:
            raise ValueError(f"Peer {self.name} is not a member of {list(members)}")

        self.members = members
        self.peer_id = members.index(self.name)
        self.clock = VectorClock(len(members))
        self.logger = logging.getLogger(f"CausalChatPeer-{self.peer_id:02d}")

        self.sender = MulticastSender(
            self.name, members, self.transport, rng=self.rng,
            min_latency=self.config.min_latency, max_latency=self.config.max_latency
        )
        self.policy = ConversationPolicy(
            self.peer_id, self.topic, self.clock, self.history,
            self.sender.multicast, n_messages=self.config.n_messages
        )
        self.engine = DeliveryEngine(
            self.peer_id, self.clock, self.policy.on_deliver,
            buffer=CausalBuffer(self.config.buffer_capacity)
        )
        self.logger.info(f"{self.name}: joining a group of {len(members)} peers with ID {self.peer_id:02d}")

    def _require_join(self, what: str) -> None:
        if not self.joined:
            raise NotJoinedError(f"Peer {self.name} got {what} before joining a group")

    def _handle_start_chat(self, signal: StartChat) -> Optional[ChatMessage]:
        self._require_join("a start signal")
        return self.policy.start_conversation()

    def _handle_chat_message(self, message: ChatMessage) -> List[ChatMessage]:
        self._require_join(f"message {message.label}")
        return self.engine.receive(message)

    def _handle_print_history(self, signal: PrintHistory) -> str:
        label = f"{self.peer_id:02d}" if self.peer_id is not None else self.name
        line = f"{label}: {self.history.render()}"
        self.printouts.append(line)
        self.logger.info(line)
        return line
