"""
Chat history of a peer and an offline checker for causal order.

The checker ranks every message seen in a set of histories so that causes come
before effects, then fills a sparse lower triangular matrix edge by edge:
entry [i, j] is set when the message ranked j happens before the one ranked i.
A history violates causal order if it lists i before a j it depends on.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Tuple

import numpy as np
from scipy.sparse import csr_matrix, lil_matrix

from .chat_message import ChatMessage

SENT = 'sent'
DELIVERED = 'delivered'

MessageKey = Tuple[int, int]  # (sender id, sender's own clock slot)


@dataclass(frozen=True)
class HistoryEntry:
    """One sent or delivered message as recorded in a history."""
    topic: str
    seq: int
    sender_id: int
    clock: Tuple[int, ...]
    kind: str

    @property
    def label(self) -> str:
        return f"{self.topic}{self.seq}"

    @property
    def key(self) -> MessageKey:
        return (self.sender_id, self.clock[self.sender_id])


class HistoryLog:
    """Append-only record of the messages a peer has sent or delivered."""

    def __init__(self):
        self._entries: List[HistoryEntry] = []

    def _append(self, message: ChatMessage, kind: str) -> HistoryEntry:
        entry = HistoryEntry(message.topic, message.seq, message.sender_id, message.clock, kind)
        self._entries.append(entry)
        return entry

    def record_sent(self, message: ChatMessage) -> HistoryEntry:
        return self._append(message, SENT)

    def record_delivered(self, message: ChatMessage) -> HistoryEntry:
        return self._append(message, DELIVERED)

    @property
    def entries(self) -> Tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def pairs(self) -> List[Tuple[str, int]]:
        """The (topic, seq) sequence in recording order."""
        return [(e.topic, e.seq) for e in self._entries]

    def labels(self) -> List[str]:
        return [e.label for e in self._entries]

    def render(self) -> str:
        return " ".join(self.labels())

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self):
        return iter(self.entries)


@dataclass(frozen=True)
class CausalViolation:
    """`later` depends on `earlier`, yet the peer recorded it first."""
    peer_id: int
    earlier: str
    later: str

    def __str__(self) -> str:
        return f"peer {self.peer_id:02d}: {self.later} recorded before its dependency {self.earlier}"


class CausalOrderChecker:
    """
    Verifies histories against the happens-before relation of their messages.
    """

    def __init__(self):
        self.key_to_index: Dict[MessageKey, int] = {}
        self.labels: List[str] = []
        self._clocks: List[Tuple[int, ...]] = []
        self._matrix = None
        # Matrix rows are ordered by rank, a linear extension of happens-before
        self._order: List[int] = []
        self._rank: Dict[int, int] = {}

    def register(self, entry: HistoryEntry) -> int:
        """Register a message and return its index."""
        index = self.key_to_index.get(entry.key)
        if index is None:
            index = len(self._clocks)
            self.key_to_index[entry.key] = index
            self.labels.append(entry.label)
            self._clocks.append(tuple(entry.clock))
            self._matrix = None
        return index

    def register_all(self, entries: Iterable[HistoryEntry]) -> None:
        for entry in entries:
            self.register(entry)

    @property
    def dependency_matrix(self) -> csr_matrix:
        """Lower triangular matrix over ranks: [r_i, r_j] set when j happens before i."""
        if self._matrix is None:
            self._matrix = self._build_matrix()
        return self._matrix

    def _build_matrix(self) -> csr_matrix:
        n = len(self._clocks)
        # A message's clock sum exceeds that of everything it depends on
        self._order = sorted(range(n), key=lambda i: (sum(self._clocks[i]), i))
        self._rank = {index: rank for rank, index in enumerate(self._order)}

        matrix = lil_matrix((n, n), dtype=bool)
        clocks = [np.asarray(self._clocks[i], dtype=np.int64) for i in self._order]
        for rank_i in range(n):
            for rank_j in range(rank_i):
                if np.all(clocks[rank_j] <= clocks[rank_i]) and not np.array_equal(clocks[rank_j], clocks[rank_i]):
                    matrix[rank_i, rank_j] = True
        return matrix.tocsr()

    def dependencies(self, index: int) -> List[int]:
        """Indices of every message that happens before message `index`."""
        matrix = self.dependency_matrix
        rank = self._rank[index]
        ranks = matrix.indices[matrix.indptr[rank]:matrix.indptr[rank + 1]]
        return [self._order[int(r)] for r in ranks]

    def depends_on(self, later: HistoryEntry, earlier: HistoryEntry) -> bool:
        matrix = self.dependency_matrix
        i = self._rank[self.key_to_index[later.key]]
        j = self._rank[self.key_to_index[earlier.key]]
        return bool(matrix[i, j])

    def check(self, peer_id: int, history: HistoryLog) -> List[CausalViolation]:
        """Report every pair recorded against causal order in `history`."""
        self.register_all(history.entries)
        position = {self.key_to_index[e.key]: pos for pos, e in enumerate(history.entries)}

        violations = []
        for index, pos in position.items():
            for dep in self.dependencies(index):
                dep_pos = position.get(dep)
                if dep_pos is not None and dep_pos > pos:
                    violations.append(CausalViolation(peer_id, self.labels[dep], self.labels[index]))
        return violations

    def check_all(self, histories: Mapping[int, HistoryLog]) -> List[CausalViolation]:
        for history in histories.values():
            self.register_all(history.entries)
        violations = []
        for peer_id, history in sorted(histories.items()):
            violations.extend(self.check(peer_id, history))
        return violations
