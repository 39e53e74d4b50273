"""
Holding area for chat messages received before their causal predecessors.
"""
from typing import Callable, Iterator, List, Optional

from .chat_message import ChatMessage
from .errors import BufferOverflowError


class CausalBuffer:
    """
    Unordered collection of messages that are not deliverable yet.

    Messages are kept in arrival order only so that scans are reproducible;
    nothing depends on that order. There is no deduplication.
    """

    def __init__(self, capacity: Optional[int] = None):
        if capacity is not None and capacity <= 0:
            raise ValueError(f"Buffer capacity must be positive, got {capacity}")
        self.capacity = capacity
        self._messages: List[ChatMessage] = []

    def add(self, message: ChatMessage) -> None:
        if self.capacity is not None and len(self._messages) >= self.capacity:
            raise BufferOverflowError(self.capacity)
        self._messages.append(message)

    def extract_first(self, predicate: Callable[[ChatMessage], bool]) -> Optional[ChatMessage]:
        """Remove and return the first buffered message matching `predicate`."""
        for index, message in enumerate(self._messages):
            if predicate(message):
                return self._messages.pop(index)
        return None

    def __len__(self) -> int:
        return len(self._messages)

    def __iter__(self) -> Iterator[ChatMessage]:
        return iter(list(self._messages))

    def __contains__(self, message: object) -> bool:
        return message in self._messages
