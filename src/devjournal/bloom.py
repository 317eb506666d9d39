"""Bloom filter used to rule out day keys that were never written."""

from __future__ import annotations

import hashlib
import math
from typing import Any

from .errors import ConstructionError


class BloomFilter:
    """Append-only probabilistic set with no false negatives.

    Sizing follows the standard formulas:
        m = ceil(-n * ln(p) / ln(2)^2)
        k = ceil(m * ln(2) / n)
    """

    def __init__(self, expected_items: int = 10000, false_positive_rate: float = 0.01):
        if expected_items <= 0:
            raise ConstructionError(
                f"expected_items must be positive, got {expected_items}"
            )
        if not 0 < false_positive_rate < 1:
            raise ConstructionError(
                f"false_positive_rate must be in (0, 1), got {false_positive_rate}"
            )

        self.expected_items = expected_items
        self.false_positive_rate = false_positive_rate
        self.bit_array_size = math.ceil(
            -expected_items * math.log(false_positive_rate) / (math.log(2) ** 2)
        )
        self.hash_functions = math.ceil(self.bit_array_size * math.log(2) / expected_items)
        self._bits = bytearray(math.ceil(self.bit_array_size / 8))
        self.item_count = 0

    def _position(self, item: str, seed: int) -> int:
        digest = hashlib.blake2b(
            item.encode("utf-8"),
            digest_size=8,
            salt=seed.to_bytes(16, "little"),
        ).digest()
        return int.from_bytes(digest, "little") % self.bit_array_size

    def _positions(self, item: str) -> list[int]:
        return [self._position(item, seed) for seed in range(self.hash_functions)]

    def add(self, item: str) -> None:
        """Set the k bits for item."""
        for index in self._positions(item):
            self._bits[index // 8] |= 1 << (index % 8)
        self.item_count += 1

    def contains(self, item: str) -> bool:
        """False means definitely absent; True means possibly present."""
        for index in self._positions(item):
            if not self._bits[index // 8] & (1 << (index % 8)):
                return False
        return True

    def __contains__(self, item: str) -> bool:
        return self.contains(item)

    def estimated_false_positive_rate(self) -> float:
        """Expected false-positive rate at the current fill level."""
        if self.item_count == 0:
            return 0.0
        k = self.hash_functions
        return (1 - math.exp(-k * self.item_count / self.bit_array_size)) ** k

    def stats(self) -> dict[str, Any]:
        return {
            "expected_items": self.expected_items,
            "actual_items": self.item_count,
            "bit_array_size": self.bit_array_size,
            "hash_functions": self.hash_functions,
            "false_positive_rate": self.false_positive_rate,
            "estimated_false_positive_rate": round(self.estimated_false_positive_rate(), 6),
            "memory_usage": len(self._bits),
        }
