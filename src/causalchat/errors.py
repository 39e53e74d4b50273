"""
Exception types raised by the CausalChat core.
"""


class CausalChatError(Exception):
    """Base class for all CausalChat errors."""


class ClockSizeMismatch(CausalChatError, ValueError):
    """Two vector clocks of different group sizes were combined."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"Vector clock size mismatch: expected {expected}, got {actual}")
        self.expected = expected
        self.actual = actual


class MalformedMessageError(CausalChatError, ValueError):
    """A message names a sender that is not part of the group."""

    def __init__(self, sender_id: int, group_size: int):
        super().__init__(f"Sender id {sender_id} is outside a group of {group_size} peers")
        self.sender_id = sender_id
        self.group_size = group_size


class BufferOverflowError(CausalChatError):
    """The causal buffer reached its configured capacity."""

    def __init__(self, capacity: int):
        super().__init__(f"Causal buffer is full (capacity={capacity})")
        self.capacity = capacity


class NotJoinedError(CausalChatError):
    """A peer received chat traffic before the join-group signal."""


class UnknownPeerError(CausalChatError, KeyError):
    """A transport was asked to reach a peer it does not know."""
