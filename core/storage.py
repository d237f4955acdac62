"""
Secure Storage - Key-Value Persistence for Comparison State

Two SecureStorage implementations:
- InMemorySecureStorage: process-local, used by tests and the dev server
- JsonFileSecureStorage: one JSON document on disk, written atomically

Values are deep-copied on the way in and out so callers never share
mutable state with the store.
"""

from __future__ import annotations

import asyncio
import copy
import json
import logging
import os
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Final, Optional

from core.collaborators import SecureStorage, SecurityLevel


logger = logging.getLogger(__name__)


# =============================================================================
# Storage Configuration
# =============================================================================

DEFAULT_STORAGE_FILE: Final[str] = "data/comparison_store.json"


# =============================================================================
# In-Memory Storage
# =============================================================================


class InMemorySecureStorage(SecureStorage):
    """Dictionary-backed storage. Security level is recorded but not enforced."""

    def __init__(self):
        self._data: dict[str, Any] = {}
        self._levels: dict[str, SecurityLevel] = {}

    async def get_data(self, key: str, default: Any, security_level: SecurityLevel) -> Any:
        if key not in self._data:
            return default
        return copy.deepcopy(self._data[key])

    async def save_data(self, key: str, value: Any, security_level: SecurityLevel) -> None:
        self._data[key] = copy.deepcopy(value)
        self._levels[key] = security_level

    def keys(self) -> list[str]:
        return list(self._data)


# =============================================================================
# JSON File Storage
# =============================================================================


class JsonFileSecureStorage(SecureStorage):
    """
    File-backed storage.

    Layout:
    {
        "entries": {key: {"security_level": ..., "value": ...}},
        "saved_at": ISO timestamp
    }
    """

    def __init__(self, path: Optional[str] = None):
        """
        Initialise file storage.

        Args:
            path: JSON file path. Defaults to data/comparison_store.json.
        """
        self._path = Path(path or DEFAULT_STORAGE_FILE)
        self._entries: dict[str, dict] = {}
        self._write_lock = threading.Lock()
        self._load_from_file()

    @property
    def path(self) -> Path:
        return self._path

    def _load_from_file(self) -> None:
        if not self._path.exists():
            return

        try:
            data = json.loads(self._path.read_text())
            self._entries = dict(data.get("entries", {}))
        except (json.JSONDecodeError, AttributeError, ValueError) as e:
            # Unreadable store: start fresh, the next save overwrites it
            logger.warning("Could not load comparison store %s: %s", self._path, e)
            self._entries = {}

    def _save_to_file(self, entries: dict[str, dict]) -> None:
        data = {
            "entries": entries,
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }

        self._path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self._path.with_suffix(self._path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(data, indent=2))
        os.replace(tmp_path, self._path)

    async def get_data(self, key: str, default: Any, security_level: SecurityLevel) -> Any:
        entry = self._entries.get(key)
        if entry is None:
            return default
        return copy.deepcopy(entry["value"])

    def _write_entry(self, key: str, entry: dict) -> None:
        # Entries are swapped in only once the file is on disk
        with self._write_lock:
            entries = dict(self._entries)
            entries[key] = entry
            self._save_to_file(entries)
            self._entries = entries

    async def save_data(self, key: str, value: Any, security_level: SecurityLevel) -> None:
        """
        Persist one key.

        The file write runs in a worker thread. If it fails the error
        propagates and the previous value stays visible.
        """
        entry = {
            "security_level": security_level.value,
            "value": copy.deepcopy(value),
        }
        await asyncio.to_thread(self._write_entry, key, entry)
