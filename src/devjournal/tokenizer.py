"""Default token extraction for day records."""

from __future__ import annotations

from typing import Any, Callable

from .models import KeywordPayload, TechnologyPayload, Token

# Only the leading words of a message are indexed
KEYWORD_WORDS = 3
KEYWORD_MIN_LENGTH = 3

Tokenizer = Callable[[dict[str, Any]], list[Token]]


def extract_tokens(record: dict[str, Any]) -> list[Token]:
    """Extract technology and keyword tokens from a day record.

    Args:
        record: Day record as stored on disk ({"date", "entries": [...]})

    Returns:
        Tokens in entry order; technologies before keywords within an entry
    """
    date = record.get("date", "")
    entries = record.get("entries")
    if not isinstance(entries, list):
        return []

    tokens: list[Token] = []
    for entry in entries:
        if not isinstance(entry, dict):
            continue

        for tech in entry.get("technologies") or []:
            if isinstance(tech, str) and tech.strip():
                name = tech.strip()
                tokens.append(Token(name, TechnologyPayload(name=name, date=date)))

        message = entry.get("message")
        if isinstance(message, str):
            for word in message.lower().split()[:KEYWORD_WORDS]:
                if len(word) >= KEYWORD_MIN_LENGTH:
                    tokens.append(Token(word, KeywordPayload(word=word, date=date)))

    return tokens
