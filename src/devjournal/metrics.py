"""Query latency samples and the bounded buffer that holds them."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Generic, Optional, TypeVar

from .models import format_timestamp

T = TypeVar("T")


class RingBuffer(Generic[T]):
    """Fixed-capacity buffer; pushing into a full buffer drops the oldest item."""

    def __init__(self, size: int = 1000):
        if size <= 0:
            raise ValueError(f"RingBuffer size must be positive, got {size}")
        self.size = size
        self._buffer: list[Optional[T]] = [None] * size
        self._head = 0
        self._tail = 0
        self.count = 0

    def __len__(self) -> int:
        return self.count

    def push(self, item: T) -> None:
        self._buffer[self._tail] = item
        self._tail = (self._tail + 1) % self.size
        if self.count < self.size:
            self.count += 1
        else:
            self._head = (self._head + 1) % self.size

    def get(self, index: int) -> Optional[T]:
        """Item at index counted from the oldest, or None if out of range."""
        if index < 0 or index >= self.count:
            return None
        return self._buffer[(self._head + index) % self.size]

    def latest(self, n: int = 10) -> list[T]:
        """Up to n most recent items, newest first."""
        result = []
        for i in range(min(n, self.count)):
            result.append(self._buffer[(self._tail - 1 - i) % self.size])
        return result

    def to_list(self) -> list[T]:
        """All items, oldest first."""
        return [self._buffer[(self._head + i) % self.size] for i in range(self.count)]

    def clear(self) -> None:
        self._buffer = [None] * self.size
        self._head = 0
        self._tail = 0
        self.count = 0

    def is_full(self) -> bool:
        return self.count == self.size

    def is_empty(self) -> bool:
        return self.count == 0

    def stats(self) -> dict[str, Any]:
        return {
            "size": self.count,
            "max_size": self.size,
            "utilization": round(self.count / self.size * 100, 1),
        }


@dataclass(frozen=True)
class QuerySample:
    """Latency of one engine query."""
    operation: str
    target: str
    duration_ms: float
    results: int
    timestamp: datetime

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation,
            "target": self.target,
            "duration_ms": self.duration_ms,
            "results": self.results,
            "timestamp": format_timestamp(self.timestamp),
        }
