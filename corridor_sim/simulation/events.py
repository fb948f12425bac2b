"""
Time-ordered queue of deferred simulation work.

Deferred work (in-flight poll responses, repair crews) is never run on a
wall-clock timer. It is pushed here with the simulated time it becomes due
and drained by the clock at the start of the tick that reaches that time.
Entries due at the same time come out in the order they were pushed.
"""

from __future__ import annotations

import heapq
import itertools
from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, List, TypeVar

T = TypeVar("T")


@dataclass(order=True)
class _Entry:
    due_time: float
    seq: int
    payload: Any = field(compare=False)


class EventQueue(Generic[T]):
    """Min-heap of payloads keyed by ``(due_time, push order)``."""

    def __init__(self) -> None:
        self._heap: List[_Entry] = []
        self._counter = itertools.count()

    def push(self, due_time: float, payload: T) -> int:
        """Schedule ``payload`` for ``due_time``; returns its sequence number."""
        seq = next(self._counter)
        heapq.heappush(self._heap, _Entry(due_time, seq, payload))
        return seq

    def pop_due(self, now: float) -> List[T]:
        """Remove and return every payload with ``due_time <= now``, in order."""
        due = []
        while self._heap and self._heap[0].due_time <= now:
            due.append(heapq.heappop(self._heap).payload)
        return due

    def peek_time(self) -> float:
        """Due time of the next entry; raises IndexError when empty."""
        return self._heap[0].due_time

    def clear(self) -> None:
        self._heap.clear()

    def __iter__(self) -> Iterator[T]:
        """Iterate payloads in due order without removing them."""
        return (entry.payload for entry in sorted(self._heap))

    def __len__(self) -> int:
        return len(self._heap)

    def __bool__(self) -> bool:
        return bool(self._heap)
