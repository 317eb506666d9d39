"""Shared pytest fixtures for devjournal tests."""

import asyncio
import json
import tempfile
from pathlib import Path
from typing import Optional

import pytest

from devjournal.config import EngineConfig
from devjournal.errors import StoreReadError


def make_record(date: str, technologies=(), message: str = "worked on things", entries: int = 1) -> dict:
    """Build a day record in the on-disk shape."""
    return {
        "date": date,
        "timestamp": f"{date}T09:00:00.000+00:00",
        "entries": [
            {
                "id": f"{date}-{i}",
                "timestamp": f"{date}T09:{i:02d}:00.000+00:00",
                "type": "general",
                "message": message,
                "mood": "Great",
                "productivity": "High",
                "technologies": list(technologies),
                "timeSpent": 2,
            }
            for i in range(entries)
        ],
    }


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeStore:
    """In-memory store that records every call.

    Keys in ``failing`` are listed as existing but raise on read.
    ``delays`` maps keys to seconds slept before answering.
    """

    def __init__(self, records: Optional[dict] = None, failing=(), delays: Optional[dict] = None):
        self.records = dict(records or {})
        self.failing = set(failing)
        self.delays = dict(delays or {})
        self.read_calls: list[str] = []
        self.exists_calls: list[str] = []
        self.list_calls = 0

    async def read_entity(self, key):
        self.read_calls.append(key)
        delay = self.delays.get(key, 0)
        if delay:
            await asyncio.sleep(delay)
        if key in self.failing:
            raise StoreReadError(key, OSError("permission denied"))
        return self.records.get(key)

    async def key_exists(self, key):
        self.exists_calls.append(key)
        return key in self.records or key in self.failing

    async def list_all_keys(self):
        self.list_calls += 1
        return sorted(set(self.records) | self.failing)


@pytest.fixture
def temp_project():
    """Create a temporary project directory."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def config(temp_project):
    """Create a test configuration with small, fast structures."""
    return EngineConfig(
        project_name="test-project",
        project_root=temp_project,
        cache_max_size=100,
        filter_expected_items=1000,
        filter_false_positive_rate=0.01,
        metrics_buffer_size=100,
    )


@pytest.fixture
def entries_path(config):
    path = config.get_entries_path()
    path.mkdir(parents=True, exist_ok=True)
    return path


@pytest.fixture
def write_day(entries_path):
    """Write a day file directly, bypassing the store.

    Usage:
        def test_example(write_day):
            write_day("2024-01-01", technologies=["python"])
    """

    def _write(date: str, technologies=(), message: str = "worked on things", entries: int = 1) -> dict:
        record = make_record(date, technologies=technologies, message=message, entries=entries)
        (entries_path / f"{date}.json").write_text(json.dumps(record), encoding="utf-8")
        return record

    return _write


@pytest.fixture
def clock():
    return FakeClock()
