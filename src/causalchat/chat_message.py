"""
Messages exchanged between chat peers: the causal chat message itself and
the control signals (join group, start chat, print history).
"""
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Tuple


@dataclass(frozen=True)
class ChatMessage:
    """A topic-tagged chat message stamped with its sender's vector clock."""

    topic: str
    seq: int
    sender_id: int
    clock: Tuple[int, ...]

    def __post_init__(self):
        # Freeze whatever sequence was passed in
        object.__setattr__(self, 'clock', tuple(int(v) for v in self.clock))

    @property
    def label(self) -> str:
        return f"{self.topic}{self.seq}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            'type': 'chat',
            'topic': self.topic,
            'seq': self.seq,
            'sender_id': self.sender_id,
            'clock': list(self.clock)
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'ChatMessage':
        """Create from dictionary."""
        return cls(
            topic=data['topic'],
            seq=data['seq'],
            sender_id=data['sender_id'],
            clock=tuple(data['clock'])
        )


@dataclass(frozen=True)
class JoinGroup:
    """Tells a peer who its group members are, in stable id order."""

    members: Tuple[str, ...] = field(default_factory=tuple)

    def __post_init__(self):
        object.__setattr__(self, 'members', tuple(self.members))

    def to_dict(self) -> Dict[str, Any]:
        return {'type': 'join', 'members': list(self.members)}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'JoinGroup':
        return cls(members=tuple(data['members']))


@dataclass(frozen=True)
class StartChat:
    """Asks a peer to open a conversation on its topic."""

    def to_dict(self) -> Dict[str, Any]:
        return {'type': 'start'}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'StartChat':
        return cls()


@dataclass(frozen=True)
class PrintHistory:
    """Asks a peer to render its chat history."""

    def to_dict(self) -> Dict[str, Any]:
        return {'type': 'print'}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'PrintHistory':
        return cls()


_SIGNAL_TYPES = {
    'chat': ChatMessage,
    'join': JoinGroup,
    'start': StartChat,
    'print': PrintHistory,
}


def signal_from_dict(data: Dict[str, Any]):
    """Rebuild any peer signal from its dictionary form."""
    signal_type: Optional[type] = _SIGNAL_TYPES.get(data.get('type'))
    if signal_type is None:
        raise ValueError(f"Unknown signal type: {data.get('type')!r}")
    return signal_type.from_dict(data)
