from __future__ import annotations

import json
import logging
import os
import threading
from pathlib import Path
from typing import Iterable, List, Union

from common.types import CacheEntry
from common.utils import remove_quietly
from spotlight_cache.errors import PersistError


log = logging.getLogger(__name__)


class CacheStore:
    """
    Owns the current cache snapshot and its JSON file.

        <cache_base>/
          ├─ data/spotlight_cache.json   (pretty-printed array of entries)
          └─ images/                     (originals + _q<quality> variants)

    `_lock` guards only the list reference: `snapshot()` copies under it,
    `replace()` swaps under it. No network or file I/O happens while it is held.
    """

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)
        self._entries: List[CacheEntry] = []
        self._lock = threading.Lock()
        # orders concurrent writers of the cache file; never held with _lock
        self._write_lock = threading.Lock()

    # -------- public API --------

    def load(self) -> int:
        """
        Replace the in-memory snapshot with the file's contents.
        Missing file -> empty; unreadable/malformed file -> empty and logged.
        Returns the number of entries loaded.
        """
        entries: List[CacheEntry] = []
        if not self.path.exists():
            log.info("Spotlight cache file not found. Will create on next fetch.")
        else:
            try:
                raw = json.loads(self.path.read_text(encoding="utf-8"))
                if not isinstance(raw, list):
                    raise ValueError("cache file does not contain a JSON array")
                entries = [CacheEntry.from_dict(d) for d in raw]
                log.info("Loaded %d items from spotlight cache.", len(entries))
            except (OSError, ValueError, TypeError, AttributeError):
                log.exception("Error loading spotlight cache from %s", self.path)
                entries = []

        with self._lock:
            self._entries = entries
        return len(entries)

    def snapshot(self) -> List[CacheEntry]:
        """An independent copy; entries are immutable so a shallow copy suffices."""
        with self._lock:
            return list(self._entries)

    def replace(self, entries: Iterable[CacheEntry]) -> None:
        new = list(entries)
        with self._lock:
            self._entries = new

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def persist(self) -> bool:
        """Write the current snapshot to disk. Failures are logged, not raised."""
        data = self.snapshot()
        try:
            self._write(data)
        except PersistError:
            log.exception("Error saving spotlight cache to disk.")
            return False
        log.info("Saved %d items to spotlight cache.", len(data))
        return True

    # -------- internals --------

    def _write(self, entries: List[CacheEntry]) -> None:
        payload = json.dumps([e.to_dict() for e in entries], indent=2, ensure_ascii=False)
        tmp = self.path.with_name(self.path.name + ".tmp")
        with self._write_lock:
            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                tmp.write_text(payload + "\n", encoding="utf-8")
                os.replace(tmp, self.path)
            except OSError as e:
                remove_quietly(tmp)
                raise PersistError(f"could not write {self.path}: {e}") from e
