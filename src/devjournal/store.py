"""Flat-file backing store: one JSON file per day.

Layout: ``<entries_dir>/<YYYY-MM-DD>.json`` containing
``{"date": ..., "timestamp": ..., "entries": [...]}``.

The day files are the source of truth. The retrieval engine only reads
through this adapter; writers persist here and then notify the engine.
"""

from __future__ import annotations

import asyncio
import json
from pathlib import Path
from typing import Any, Optional, Protocol, Sequence

from .errors import StoreReadError
from .locking import day_file_lock, write_json_atomic
from .models import DevEntry, format_timestamp, parse_date_key, utc_now, validate_date_key


class EntityStore(Protocol):
    """Read interface the retrieval engine depends on."""

    async def read_entity(self, key: str) -> Optional[dict[str, Any]]: ...

    async def key_exists(self, key: str) -> bool: ...

    async def list_all_keys(self) -> Sequence[str]: ...


class JournalStore:
    """Date-keyed JSON files under a single directory."""

    def __init__(self, entries_path: Path):
        self.entries_path = entries_path

    def ensure_directory(self) -> None:
        self.entries_path.mkdir(parents=True, exist_ok=True)

    def path_for(self, key: str) -> Path:
        """Return the day file for key. Raises ValueError for non-date keys."""
        validate_date_key(key)
        return self.entries_path / f"{key}.json"

    # ---------- reads ----------

    def _read_sync(self, key: str) -> Optional[dict[str, Any]]:
        path = self.path_for(key)
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, json.JSONDecodeError, UnicodeDecodeError) as e:
            raise StoreReadError(key, e) from e

        if not isinstance(data, dict):
            raise StoreReadError(key, TypeError(f"expected JSON object, got {type(data).__name__}"))
        return data

    async def read_entity(self, key: str) -> Optional[dict[str, Any]]:
        """Read a day record.

        Returns:
            The parsed record, or None if no file exists for key

        Raises:
            StoreReadError: If the file exists but cannot be read or parsed
        """
        return await asyncio.to_thread(self._read_sync, key)

    async def key_exists(self, key: str) -> bool:
        path = self.path_for(key)
        return await asyncio.to_thread(path.is_file)

    def _list_sync(self) -> list[str]:
        if not self.entries_path.is_dir():
            return []
        keys = []
        for path in self.entries_path.glob("*.json"):
            try:
                parse_date_key(path.stem)
            except ValueError:
                continue
            keys.append(path.stem)
        return sorted(keys)

    async def list_all_keys(self) -> list[str]:
        """All stored date keys, ascending."""
        return await asyncio.to_thread(self._list_sync)

    # ---------- writes ----------

    def _write_sync(self, key: str, record: dict[str, Any]) -> Path:
        path = self.path_for(key)
        with day_file_lock(path):
            write_json_atomic(path, record)
        return path

    async def write_entity(self, key: str, record: dict[str, Any]) -> Path:
        """Replace the whole day record for key."""
        return await asyncio.to_thread(self._write_sync, key, record)

    def _append_sync(self, key: str, entry: DevEntry) -> dict[str, Any]:
        path = self.path_for(key)
        with day_file_lock(path):
            record = self._read_sync(key)
            if record is None:
                record = {
                    "date": key,
                    "timestamp": format_timestamp(utc_now()),
                    "entries": [],
                }
            record.setdefault("entries", []).append(entry.to_dict())
            write_json_atomic(path, record)
        return record

    async def append_entry(self, key: str, entry: DevEntry) -> dict[str, Any]:
        """Append one activity to a day, creating the day file if needed.

        Returns:
            The full day record as written
        """
        return await asyncio.to_thread(self._append_sync, key, entry)
