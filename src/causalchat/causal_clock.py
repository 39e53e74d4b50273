"""
Vector Clock implementation for tracking causality between chat peers.

Clocks have a fixed length, allocated at group join, and are indexed by the
stable peer id. The counters live in a numpy integer array.
"""
from typing import Iterable, Sequence, Tuple, Union

import numpy as np

from .errors import ClockSizeMismatch, MalformedMessageError

ClockLike = Union['VectorClock', Sequence[int], np.ndarray]


class VectorClock:
    """
    Represents a vector clock for tracking causal dependencies.
    """

    def __init__(self, size: int):
        if size <= 0:
            raise ValueError(f"Vector clock size must be positive, got {size}")
        self.clocks = np.zeros(size, dtype=np.int64)

    @classmethod
    def from_snapshot(cls, values: Iterable[int]) -> 'VectorClock':
        """Create a VectorClock from a snapshot taken with snapshot()."""
        array = np.asarray(list(values), dtype=np.int64)
        clock = cls(len(array))
        clock.clocks[:] = array
        return clock

    def __len__(self) -> int:
        return len(self.clocks)

    def __getitem__(self, index: int) -> int:
        return int(self.clocks[index])

    def _coerce(self, other: ClockLike) -> np.ndarray:
        if isinstance(other, VectorClock):
            values = other.clocks
        else:
            values = np.asarray(other, dtype=np.int64)
        if values.shape != self.clocks.shape:
            raise ClockSizeMismatch(len(self.clocks), len(values))
        return values

    def increment(self, node_id: int) -> 'VectorClock':
        """Increment the clock slot of the given peer."""
        self.clocks[node_id] += 1
        return self

    def merge(self, other: ClockLike) -> 'VectorClock':
        """Merge another vector clock (or snapshot) into this one."""
        np.maximum(self.clocks, self._coerce(other), out=self.clocks)
        return self

    def snapshot(self) -> Tuple[int, ...]:
        """Return an immutable copy of the counters."""
        return tuple(int(v) for v in self.clocks)

    def copy(self) -> 'VectorClock':
        """Return a copy of this vector clock."""
        return VectorClock.from_snapshot(self.clocks)

    def can_deliver(self, sender_id: int, snapshot: ClockLike) -> bool:
        """
        True if a message stamped with `snapshot` by `sender_id` is the next
        one expected from that sender and depends on nothing we have not seen.
        """
        values = self._coerce(snapshot)
        if not 0 <= sender_id < len(self.clocks):
            raise MalformedMessageError(sender_id, len(self.clocks))
        if values[sender_id] != self.clocks[sender_id] + 1:
            return False
        others = np.arange(len(values)) != sender_id
        return bool(np.all(values[others] <= self.clocks[others]))

    def __le__(self, other: 'VectorClock') -> bool:
        """Less than or equal to comparison (causally precedes or equals)."""
        return bool(np.all(self.clocks <= self._coerce(other)))

    def __lt__(self, other: 'VectorClock') -> bool:
        return self <= other and self != other

    def __ge__(self, other: 'VectorClock') -> bool:
        """Greater than or equal to comparison."""
        return other.__le__(self)

    def __gt__(self, other: 'VectorClock') -> bool:
        return other.__lt__(self)

    def __eq__(self, other: object) -> bool:
        """Equality comparison."""
        if not isinstance(other, VectorClock):
            return NotImplemented
        return self.clocks.shape == other.clocks.shape and bool(np.array_equal(self.clocks, other.clocks))

    def __ne__(self, other: object) -> bool:
        """Inequality comparison."""
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    __hash__ = None

    def happens_before(self, other: 'VectorClock') -> bool:
        return self < other

    def concurrent(self, other: 'VectorClock') -> bool:
        """True if neither clock precedes the other."""
        return not self <= other and not other <= self

    def to_list(self) -> list:
        """Convert to a list for serialization."""
        return [int(v) for v in self.clocks]

    def __str__(self) -> str:
        return str(self.to_list())

    def __repr__(self) -> str:
        return f"VectorClock({self.to_list()})"
