"""Persistence interfaces: key-value blob store and journal entry store.

Both are injected into the caches and the pipeline; nothing in the package
reaches for a process-wide store on its own.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from lightnote.models import JournalEntry, load_entries

logger = logging.getLogger(__name__)

_KEY_RE = re.compile(r"^[A-Za-z0-9._-]+(/[A-Za-z0-9._-]+)*$")


class BlobStore(Protocol):
    """Generic key-value document store."""

    def get(self, key: str) -> dict[str, Any] | None: ...

    def put(self, key: str, blob: dict[str, Any]) -> None: ...


class EntryStore(Protocol):
    """Read access to journal entries by time range."""

    def entries_between(self, start: datetime, end: datetime) -> list[JournalEntry]: ...


def _atomic_write(path: Path, content: str) -> None:
    """Write via a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class MemoryBlobStore:
    """In-process blob store. Values are copied through JSON on the way in."""

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def get(self, key: str) -> dict[str, Any] | None:
        raw = self._data.get(key)
        return json.loads(raw) if raw is not None else None

    def put(self, key: str, blob: dict[str, Any]) -> None:
        self._data[key] = json.dumps(blob, default=str)

    def keys(self) -> list[str]:
        return sorted(self._data)


class JsonBlobStore:
    """One JSON file per key under ``root``.

    ``rollups.v1/2025-W03`` lives at ``root/rollups.v1/2025-W03.json``, so
    updating one week never rewrites another week's document.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def _path(self, key: str) -> Path:
        if not _KEY_RE.match(key) or any(part in (".", "..") for part in key.split("/")):
            raise ValueError(f"Invalid blob key: {key!r}")
        return self._root / f"{key}.json"

    def get(self, key: str) -> dict[str, Any] | None:
        path = self._path(key)
        if not path.exists():
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as exc:
            logger.warning("Unreadable blob %s: %s", path, exc)
            return None
        if not isinstance(data, dict):
            logger.warning("Blob %s is not an object, ignoring", path)
            return None
        return data

    def put(self, key: str, blob: dict[str, Any]) -> None:
        _atomic_write(self._path(key), json.dumps(blob, indent=2, default=str))

    def delete(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class MemoryEntryStore:
    """Entry store over an in-memory list."""

    def __init__(self, entries: list[JournalEntry] | None = None) -> None:
        self._entries = sorted(entries or [], key=lambda e: e.created_at)

    def add(self, entry: JournalEntry) -> None:
        self._entries.append(entry)
        self._entries.sort(key=lambda e: e.created_at)

    def entries_between(self, start: datetime, end: datetime) -> list[JournalEntry]:
        return [e for e in self._entries if start <= e.created_at < end]


class JsonEntryStore(MemoryEntryStore):
    """Entry store backed by the journal's JSON export (a list of records)."""

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        super().__init__(self._load())

    def _load(self) -> list[JournalEntry]:
        if not self._path.exists():
            logger.warning("Entries file not found: %s", self._path)
            return []
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            logger.warning("Corrupt entries file %s: %s", self._path, exc)
            return []
        if isinstance(raw, dict):
            raw = raw.get("entries", [])
        if not isinstance(raw, list):
            logger.warning("Entries file %s does not hold a list", self._path)
            return []
        entries = load_entries([r for r in raw if isinstance(r, dict)])
        logger.debug("Loaded %d entries from %s", len(entries), self._path)
        return entries
