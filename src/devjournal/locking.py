"""File locking and atomic JSON writes for day files."""

from __future__ import annotations

import json
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Generator

import portalocker

LOCK_TIMEOUT = 10.0


@contextmanager
def day_file_lock(path: Path, timeout: float = LOCK_TIMEOUT) -> Generator[None, None, None]:
    """Hold an exclusive lock on a day file for a read-modify-write cycle.

    The lock lives in a sibling ``<name>.json.lock`` file so readers of the
    day file itself are never blocked.

    Raises:
        portalocker.LockException: If the lock cannot be acquired in time
    """
    lock_path = path.with_suffix(path.suffix + ".lock")
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    lock_path.touch(exist_ok=True)

    with portalocker.Lock(lock_path, timeout=timeout):
        yield


def write_json_atomic(path: Path, data: Any) -> None:
    """Serialize data to path via a temp file and rename.

    Readers see either the old file or the new one, never a partial write.
    """
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    path.parent.mkdir(parents=True, exist_ok=True)

    try:
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_path, path)
    except Exception:
        if tmp_path.exists():
            tmp_path.unlink()
        raise
