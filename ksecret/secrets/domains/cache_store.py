"""Local secret cache persisted as a single JSON document.

The store is loaded fully into memory once per process. Every mutation
re-reads the document from disk, applies the change and rewrites the whole
file through a temporary file and an atomic rename, so concurrent invocations
never leave a torn file behind.

Document layout:
{"version": 1, "entries": {"dev/db-password": {"value": "...", "fetched_at": 1700000000.0}}}

An unreadable or corrupted document is treated as an empty cache.
"""
import json
import logging
import os
import tempfile
import time
from pathlib import Path
from typing import Callable, Dict, Union

from .errors import CacheCorruptError
from .models import CacheEntry, CacheLookup, SecretKey

logger = logging.getLogger(__name__)

CACHE_VERSION = 1
DEFAULT_TTL_SECONDS = 300


class CacheStore:
    """TTL cache of secret values keyed by ``environment/name``."""

    def __init__(
        self,
        path: Union[str, Path],
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        clock: Callable[[], float] = time.time,
    ):
        self.path = Path(path)
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}

    def load(self) -> bool:
        """
        Read the on-disk cache into memory.

        Returns:
            False if the file was corrupted and has been discarded, True otherwise
        """
        try:
            self._entries = self._read_disk()
        except CacheCorruptError as e:
            logger.warning(f"Ignoring corrupted cache at {self.path}: {e}")
            self._entries = {}
            return False
        return True

    def get(self, key: SecretKey) -> CacheLookup:
        """
        Look up a cached value.

        Args:
            key: Secret to look up

        Returns:
            CacheLookup; fresh is False once the entry is TTL seconds old or more
        """
        entry = self._entries.get(str(key))
        if entry is None:
            return CacheLookup(None, False, False)
        age = self._clock() - entry.fetched_at
        return CacheLookup(entry.value, True, age < self.ttl_seconds)

    def put(self, key: SecretKey, value: str) -> bool:
        """Insert or overwrite an entry and persist. Returns False if persisting failed."""
        entry = CacheEntry(value=value, fetched_at=self._clock())
        return self._mutate(lambda entries: entries.__setitem__(str(key), entry))

    def delete(self, key: SecretKey) -> bool:
        """Remove an entry if present and persist. Returns False if persisting failed."""
        return self._mutate(lambda entries: entries.pop(str(key), None))

    def clear(self) -> bool:
        return self._mutate(lambda entries: entries.clear())

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: SecretKey) -> bool:
        return str(key) in self._entries

    def _mutate(self, change: Callable[[Dict[str, CacheEntry]], object]) -> bool:
        # Pick up entries written by other invocations since load()
        try:
            entries = self._read_disk()
        except CacheCorruptError as e:
            logger.warning(f"Overwriting corrupted cache at {self.path}: {e}")
            entries = {}
        change(entries)
        self._entries = entries

        try:
            self._write_disk(entries)
        except OSError as e:
            logger.warning(f"Failed to persist cache to {self.path}: {e}")
            return False
        return True

    def _read_disk(self) -> Dict[str, CacheEntry]:
        try:
            with open(self.path, 'r', encoding="utf-8") as f:
                document = json.load(f)
        except FileNotFoundError:
            return {}
        except json.JSONDecodeError as e:
            raise CacheCorruptError(f"invalid JSON: {e}") from e
        except (OSError, UnicodeDecodeError) as e:
            raise CacheCorruptError(f"unreadable: {e}") from e

        if not isinstance(document, dict) or not isinstance(document.get("entries"), dict):
            raise CacheCorruptError("missing 'entries' mapping")

        entries: Dict[str, CacheEntry] = {}
        for key, raw in document["entries"].items():
            if not isinstance(raw, dict):
                continue
            value = raw.get("value")
            fetched_at = raw.get("fetched_at")
            if not isinstance(value, str) or isinstance(fetched_at, bool) or not isinstance(fetched_at, (int, float)):
                logger.debug(f"Dropping malformed cache entry: {key}")
                continue
            entries[key] = CacheEntry(value=value, fetched_at=float(fetched_at))
        return entries

    def _write_disk(self, entries: Dict[str, CacheEntry]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        document = {
            "version": CACHE_VERSION,
            "entries": {
                key: {"value": entry.value, "fetched_at": entry.fetched_at}
                for key, entry in entries.items()
            },
        }

        # mkstemp creates the file with mode 0600
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, 'w', encoding="utf-8") as f:
                json.dump(document, f, indent=2)
            os.replace(tmp_path, self.path)
        except BaseException:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass
            raise
