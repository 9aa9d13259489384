"""
File-backed cache of external knowledge lookups.

One JSON file per normalized search term ({key}.json) and one per detail
view (detail_{id}.json). Every file carries epoch-millisecond `timestamp`
and `expiry` fields; an entry is usable iff now <= expiry. Concurrent
writers to the same key are last-writer-wins. A search term whose key
would start with detail_ is stored under a hashed key instead.
"""

import hashlib
import json
import logging
import os
import re
import tempfile
import time
from typing import Any, Callable, Dict, Iterator, List, Optional

from casino_search.errors import CacheCorruptionError

logger = logging.getLogger(__name__)

DETAIL_PREFIX = "detail_"
MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    return int(time.time() * 1000)


def generate_cache_key(search_term: str) -> str:
    """Filesystem-safe key: lowercase, runs of non-alphanumerics become one '_'."""
    key = re.sub(r"[^a-z0-9]", "_", (search_term or "").lower())
    key = re.sub(r"_+", "_", key).strip("_")
    if not key:
        # Terms made only of symbols or non-ASCII letters
        key = "h_" + hashlib.md5((search_term or "").encode("utf-8")).hexdigest()[:16]
    return key


class SearchCache:
    """Disk cache with expiry for search results and detail payloads."""

    def __init__(self, cache_dir: str, ttl_days: float = 7, clock: Callable[[], int] = now_ms):
        """
        Args:
            cache_dir: Directory holding the cache files
            ttl_days: Lifetime of new entries
            clock: Returns the current time in epoch milliseconds
        """
        self.cache_dir = cache_dir
        self.ttl_ms = int(ttl_days * MS_PER_DAY)
        self.clock = clock
        self._ensure_dir()

    def _ensure_dir(self):
        os.makedirs(self.cache_dir, exist_ok=True)

    def _path_for_term(self, search_term: str) -> str:
        key = generate_cache_key(search_term)
        if key.startswith(DETAIL_PREFIX):
            # Keep search terms out of the detail namespace
            key = "h_" + hashlib.md5(key.encode("utf-8")).hexdigest()[:16]
        return os.path.join(self.cache_dir, f"{key}.json")

    def _path_for_detail(self, detail_id: str) -> str:
        return os.path.join(self.cache_dir, f"{DETAIL_PREFIX}{generate_cache_key(detail_id)}.json")

    def _read(self, path: str) -> Dict[str, Any]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (ValueError, UnicodeDecodeError) as e:
            raise CacheCorruptionError(path, e) from e
        if not isinstance(data, dict) or not isinstance(data.get("expiry"), (int, float)):
            raise CacheCorruptionError(path)
        return data

    def _write(self, path: str, data: Dict[str, Any]):
        self._ensure_dir()
        fd, tmp_path = tempfile.mkstemp(dir=self.cache_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(data, f, ensure_ascii=False, indent=2)
            os.replace(tmp_path, path)
        except OSError:
            if os.path.exists(tmp_path):
                os.remove(tmp_path)
            raise

    def _remove(self, path: str):
        try:
            os.remove(path)
        except FileNotFoundError:
            pass

    def _load_valid(self, path: str, field: str, decode: Callable[[Dict[str, Any]], Any] = None) -> Any:
        """
        Payload stored under `field` if the entry at path is present and unexpired.

        Expired files are deleted. So are corrupt ones: unparseable JSON, a
        missing envelope, or a payload that `decode` rejects.
        """
        if not os.path.exists(path):
            return None
        try:
            data = self._read(path)
            if self.clock() > data["expiry"]:
                logger.debug(f"Cache entry expired: {path}")
                self._remove(path)
                return None
            payload = data.get(field)
            if not isinstance(payload, dict):
                raise CacheCorruptionError(path)
            if decode is None:
                return payload
            try:
                return decode(payload)
            except (TypeError, KeyError, AttributeError, ValueError) as e:
                raise CacheCorruptionError(path, e) from e
        except CacheCorruptionError as e:
            logger.warning(f"{e}, removing it")
            self._remove(path)
            return None
        except OSError as e:
            logger.warning(f"Error reading cache file {path}: {e}")
            return None

    def _envelope(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        timestamp = self.clock()
        return {**payload, "timestamp": timestamp, "expiry": timestamp + self.ttl_ms}

    def get(self, search_term: str, decode: Callable[[Dict[str, Any]], Any] = None) -> Any:
        """Cached results for the exact (normalized) term, passed through decode, or None."""
        return self._load_valid(self._path_for_term(search_term), "results", decode)

    def put(self, search_term: str, results: Dict[str, Any]):
        path = self._path_for_term(search_term)
        try:
            self._write(path, self._envelope({"searchTerm": search_term, "results": results}))
            logger.info(f"Cached results for: {search_term}")
        except OSError as e:
            logger.warning(f"Failed to cache results for {search_term}: {e}")

    def iter_valid_entries(self, decode: Callable[[Dict[str, Any]], Any] = None) -> Iterator[Any]:
        """Results of every usable search-term entry (detail files excluded)."""
        if not os.path.isdir(self.cache_dir):
            return
        for filename in sorted(os.listdir(self.cache_dir)):
            if not filename.endswith(".json") or filename.startswith(DETAIL_PREFIX):
                continue
            results = self._load_valid(os.path.join(self.cache_dir, filename), "results", decode)
            if results is not None:
                yield results

    def get_detail(self, detail_id: str) -> Optional[Dict[str, Any]]:
        return self._load_valid(self._path_for_detail(detail_id), "detail")

    def put_detail(self, detail_id: str, detail: Dict[str, Any]):
        path = self._path_for_detail(detail_id)
        try:
            self._write(path, self._envelope({"id": detail_id, "detail": detail}))
        except OSError as e:
            logger.warning(f"Failed to cache detail {detail_id}: {e}")

    def clean_expired(self) -> int:
        """Delete expired and unreadable entries. Returns how many files were removed."""
        if not os.path.isdir(self.cache_dir):
            return 0

        now = self.clock()
        cleaned = 0
        for filename in os.listdir(self.cache_dir):
            if not filename.endswith(".json"):
                continue
            path = os.path.join(self.cache_dir, filename)
            try:
                data = self._read(path)
                if now > data["expiry"]:
                    self._remove(path)
                    cleaned += 1
            except CacheCorruptionError:
                self._remove(path)
                cleaned += 1
            except OSError as e:
                logger.warning(f"Error reading cache file {path}: {e}")

        if cleaned > 0:
            logger.info(f"Cleaned {cleaned} expired cache files")
        return cleaned

    def _files(self) -> List[str]:
        if not os.path.isdir(self.cache_dir):
            return []
        return [f for f in os.listdir(self.cache_dir) if f.endswith(".json")]

    def get_stats(self) -> Dict[str, Any]:
        files = self._files()
        size_bytes = sum(os.path.getsize(os.path.join(self.cache_dir, f)) for f in files)
        return {
            "count": len([f for f in files if not f.startswith(DETAIL_PREFIX)]),
            "detail_count": len([f for f in files if f.startswith(DETAIL_PREFIX)]),
            "size_bytes": size_bytes,
            "size_mb": round(size_bytes / (1024 * 1024), 2),
            "cache_dir": self.cache_dir,
        }
