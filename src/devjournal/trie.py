"""Prefix index over lower-cased terms."""

from __future__ import annotations

from typing import Any, Optional

from .models import Payload, PrefixMatch

# Rough bytes per indexed term, used for the memory estimate in stats()
BYTES_PER_TERM = 50


class TrieNode:
    """One character transition."""

    __slots__ = ("children", "is_end_of_word", "payload", "frequency")

    def __init__(self):
        self.children: dict[str, TrieNode] = {}
        self.is_end_of_word = False
        self.payload: Optional[Payload] = None
        self.frequency = 0


class Trie:
    """Character trie with per-word payload and insertion frequency."""

    def __init__(self):
        self.root = TrieNode()
        self.word_count = 0
        self.node_count = 1

    def insert(self, word: str, payload: Optional[Payload] = None) -> None:
        """Insert word, overwriting its payload and bumping its frequency."""
        word = word.lower()
        if not word:
            return

        node = self.root
        for char in word:
            child = node.children.get(char)
            if child is None:
                child = TrieNode()
                node.children[char] = child
                self.node_count += 1
            node = child

        if not node.is_end_of_word:
            node.is_end_of_word = True
            self.word_count += 1

        node.payload = payload
        node.frequency += 1

    def _find_node(self, prefix: str) -> Optional[TrieNode]:
        node = self.root
        for char in prefix.lower():
            node = node.children.get(char)
            if node is None:
                return None
        return node

    def search(self, word: str) -> Optional[Payload]:
        """Exact-match lookup. Returns the payload or None."""
        node = self._find_node(word)
        if node is None or not node.is_end_of_word:
            return None
        return node.payload

    def frequency(self, word: str) -> int:
        node = self._find_node(word)
        if node is None or not node.is_end_of_word:
            return 0
        return node.frequency

    def starts_with(self, prefix: str, limit: Optional[int] = 10) -> list[PrefixMatch]:
        """Return words under prefix, most frequent first.

        The whole subtree is collected before sorting, so the cost is
        proportional to the subtree size regardless of limit. Equal
        frequencies keep depth-first discovery order, where children are
        visited in the order they were first created.
        """
        node = self._find_node(prefix)
        if node is None:
            return []

        results: list[PrefixMatch] = []
        stack = [(node, prefix.lower())]
        while stack:
            current, word = stack.pop()
            if current.is_end_of_word:
                results.append(PrefixMatch(word, current.payload, current.frequency))
            # Reversed so the first-created child is popped first
            for char, child in reversed(list(current.children.items())):
                stack.append((child, word + char))

        results.sort(key=lambda match: match.frequency, reverse=True)
        if limit is not None:
            results = results[:max(limit, 0)]
        return results

    def stats(self) -> dict[str, Any]:
        return {
            "terms": self.word_count,
            "nodes": self.node_count,
            "memory_estimate": self.word_count * BYTES_PER_TERM,
        }
