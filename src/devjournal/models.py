"""Data models for day records, index payloads and search results."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import Any, Iterator, Optional, Union


DATE_KEY_FORMAT = "%Y-%m-%d"


class PayloadTag(Enum):
    """Kind of token stored in the prefix index."""
    TECHNOLOGY = "technology"
    KEYWORD = "keyword"


@dataclass(frozen=True)
class TechnologyPayload:
    """A technology name seen in a day's entries."""
    name: str
    date: str

    @property
    def tag(self) -> PayloadTag:
        return PayloadTag.TECHNOLOGY

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.tag.value, "name": self.name, "date": self.date}


@dataclass(frozen=True)
class KeywordPayload:
    """A leading word from an entry message."""
    word: str
    date: str

    @property
    def tag(self) -> PayloadTag:
        return PayloadTag.KEYWORD

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.tag.value, "word": self.word, "date": self.date}


Payload = Union[TechnologyPayload, KeywordPayload]


@dataclass(frozen=True)
class Token:
    """One term extracted from a record, ready for the prefix index."""
    text: str
    payload: Payload


@dataclass(frozen=True)
class PrefixMatch:
    """A word found under a prefix, with its payload and insertion count."""
    word: str
    payload: Optional[Payload]
    frequency: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "word": self.word,
            "payload": self.payload.to_dict() if self.payload is not None else None,
            "frequency": self.frequency,
        }


def utc_now() -> datetime:
    """Get current UTC time with timezone info."""
    return datetime.now(timezone.utc)


def format_timestamp(dt: datetime) -> str:
    """Format datetime as ISO 8601 with timezone."""
    return dt.isoformat(timespec='milliseconds')


def parse_date_key(key: str) -> date:
    """Parse a YYYY-MM-DD key, raising ValueError if it is not one."""
    if not isinstance(key, str) or len(key) != 10:
        raise ValueError(f"Invalid date key: {key!r} (expected YYYY-MM-DD)")
    try:
        return datetime.strptime(key, DATE_KEY_FORMAT).date()
    except ValueError:
        raise ValueError(f"Invalid date key: {key!r} (expected YYYY-MM-DD)") from None


def validate_date_key(key: str) -> str:
    """Return key unchanged if it is a valid date key."""
    parse_date_key(key)
    return key


def format_date_key(day: date) -> str:
    return day.strftime(DATE_KEY_FORMAT)


def iter_date_keys(start: str, end: str) -> Iterator[str]:
    """Yield every date key from start to end inclusive, ascending."""
    current = parse_date_key(start)
    last = parse_date_key(end)
    while current <= last:
        yield format_date_key(current)
        current += timedelta(days=1)


@dataclass
class DevEntry:
    """A single logged activity inside a day file."""
    id: str
    timestamp: datetime
    message: str
    type: str = "general"
    mood: Optional[str] = None
    productivity: Optional[str] = None
    technologies: list[str] = field(default_factory=list)
    time_spent: Optional[float] = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the on-disk JSON shape."""
        return {
            "id": self.id,
            "timestamp": format_timestamp(self.timestamp),
            "type": self.type,
            "message": self.message,
            "mood": self.mood,
            "productivity": self.productivity,
            "technologies": list(self.technologies),
            "timeSpent": self.time_spent,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "DevEntry":
        """Build an entry from its on-disk JSON shape."""
        return cls(
            id=str(data["id"]),
            timestamp=datetime.fromisoformat(data["timestamp"]),
            message=data.get("message", ""),
            type=data.get("type", "general"),
            mood=data.get("mood"),
            productivity=data.get("productivity"),
            technologies=list(data.get("technologies") or []),
            time_spent=data.get("timeSpent"),
        )
