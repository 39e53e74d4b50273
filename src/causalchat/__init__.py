"""
CausalChat - causal-order multicast among a fixed group of chat peers.

This package implements:
- Vector clocks indexed by stable peer id
- A causal buffer and delivery engine that reorder messages by happens-before
- Randomized multicast fan-out over pluggable transports
- A topic conversation policy and per-peer chat history
"""

from .causal_clock import VectorClock
from .causal_buffer import CausalBuffer
from .chat_message import ChatMessage, JoinGroup, StartChat, PrintHistory
from .config import ChatConfig
from .conversation import ConversationPolicy, N_MESSAGES
from .delivery import DeliveryEngine
from .errors import (
    CausalChatError,
    ClockSizeMismatch,
    MalformedMessageError,
    BufferOverflowError,
    NotJoinedError,
    UnknownPeerError,
)
from .group import ChatGroup
from .history import HistoryLog, HistoryEntry, CausalOrderChecker, CausalViolation
from .multicast import MulticastSender
from .peer import ChatPeer
from .transport import Transport, LocalTransport, TcpTransport, PeerAddress

__version__ = "0.1.0"
__all__ = [
    "VectorClock",
    "CausalBuffer",
    "ChatMessage",
    "JoinGroup",
    "StartChat",
    "PrintHistory",
    "ChatConfig",
    "ConversationPolicy",
    "N_MESSAGES",
    "DeliveryEngine",
    "CausalChatError",
    "ClockSizeMismatch",
    "MalformedMessageError",
    "BufferOverflowError",
    "NotJoinedError",
    "UnknownPeerError",
    "ChatGroup",
    "HistoryLog",
    "HistoryEntry",
    "CausalOrderChecker",
    "CausalViolation",
    "MulticastSender",
    "ChatPeer",
    "Transport",
    "LocalTransport",
    "TcpTransport",
    "PeerAddress",
]
