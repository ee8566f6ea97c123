"""
Cache manager for downloaded datasets.

This module provides file-based caching of raw dataset text fetched over
HTTP so repeated queries do not download the same CSV again. Only raw
upstream text is cached; filtered points and grids are always recomputed.

Cache Strategy:
- Cache key: md5 of the dataset URI
- Expiry: max_age_hours after download (0 = always refetch)
- Location: settings.cache_dir
"""

import hashlib
import json
import logging
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from config.settings import get_settings

logger = logging.getLogger(__name__)


class DatasetCache:
    """
    File-based cache for downloaded dataset text.

    Attributes:
        cache_dir: Directory holding the cache files
        max_age_hours: Age after which an entry is stale
    """

    def __init__(self, cache_dir: Optional[Path] = None, max_age_hours: Optional[int] = None):
        """
        Initialize cache manager.

        Args:
            cache_dir: Directory for cache files. Uses settings default if None.
            max_age_hours: Entry lifetime. Uses settings default if None.
        """
        settings = get_settings()
        self.cache_dir = cache_dir or settings.cache_dir
        self.max_age_hours = settings.cache_max_age_hours if max_age_hours is None else max_age_hours
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        logger.debug(f"Cache directory: {self.cache_dir}")

    def get_cache_key(self, uri: str) -> str:
        """Generate the cache key (used as filename) for a dataset URI."""
        return f"dataset_{hashlib.md5(uri.encode()).hexdigest()}"

    def get_cache_path(self, cache_key: str) -> Path:
        """Get full file path for cache key."""
        return self.cache_dir / f"{cache_key}.json"

    def get_cached_entry(self, cache_key: str) -> Optional[dict]:
        """
        Read a cache entry.

        Returns:
            Entry dictionary, or None if missing or corrupted
        """
        cache_path = self.get_cache_path(cache_key)

        if not cache_path.exists():
            logger.debug(f"Cache miss: {cache_key}")
            return None

        try:
            with open(cache_path, "r", encoding="utf-8") as f:
                entry = json.load(f)
        except json.JSONDecodeError as e:
            logger.warning(f"Invalid cache file {cache_key}: {e}")
            # Remove corrupted cache file
            cache_path.unlink(missing_ok=True)
            return None
        except OSError as e:
            logger.error(f"Error reading cache {cache_key}: {e}")
            return None

        if not isinstance(entry, dict) or "data" not in entry or "cached_at" not in entry:
            logger.warning(f"Malformed cache entry {cache_key}, removing")
            cache_path.unlink(missing_ok=True)
            return None

        logger.debug(f"Cache hit: {cache_key}")
        return entry

    def save_to_cache(self, cache_key: str, uri: str, text: str) -> None:
        """Save dataset text to cache."""
        cache_path = self.get_cache_path(cache_key)

        cache_data = {
            "cached_at": datetime.utcnow().isoformat(),
            "cache_key": cache_key,
            "uri": uri,
            "data": text,
        }

        try:
            with open(cache_path, "w", encoding="utf-8") as f:
                json.dump(cache_data, f)
            logger.debug(f"Cached: {cache_key} ({len(text)} chars)")
        except OSError as e:
            logger.error(f"Error saving cache {cache_key}: {e}")

    def is_entry_valid(self, entry: dict) -> bool:
        """Check if a cache entry is younger than max_age_hours."""
        try:
            cached_at = datetime.fromisoformat(entry["cached_at"])
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Error checking cache validity: {e}")
            return False

        age = datetime.utcnow() - cached_at
        return age < timedelta(hours=self.max_age_hours)

    def get_or_fetch(self, uri: str, fetch_func: Callable[[], str]) -> str:
        """
        Get dataset text from cache or fetch using provided function.

        Args:
            uri: Dataset URI (cache identity)
            fetch_func: Function returning the dataset text on cache miss

        Returns:
            Dataset text (from cache or fresh fetch)
        """
        cache_key = self.get_cache_key(uri)

        entry = self.get_cached_entry(cache_key)
        if entry is not None and self.is_entry_valid(entry):
            logger.info(f"Using cached dataset for {uri}")
            return entry["data"]

        logger.info(f"Fetching fresh dataset for {uri}")
        text = fetch_func()
        self.save_to_cache(cache_key, uri, text)
        return text

    def clear_cache(self) -> int:
        """
        Remove all cache files.

        Returns:
            Number of files removed
        """
        count = 0
        for cache_file in self.cache_dir.glob("dataset_*.json"):
            cache_file.unlink()
            count += 1

        logger.info(f"Cleared {count} cache files")
        return count

    def clear_expired(self) -> int:
        """
        Remove stale or unreadable cache files.

        Returns:
            Number of files removed
        """
        count = 0
        for cache_file in self.cache_dir.glob("dataset_*.json"):
            entry = self.get_cached_entry(cache_file.stem)
            if entry is None:
                # get_cached_entry already removed a corrupted file
                count += int(not cache_file.exists())
                continue
            if not self.is_entry_valid(entry):
                cache_file.unlink()
                count += 1

        logger.info(f"Cleared {count} expired cache files")
        return count

    def get_cache_stats(self) -> dict:
        """Get cache statistics."""
        files = list(self.cache_dir.glob("dataset_*.json"))
        total_size = sum(f.stat().st_size for f in files)

        return {
            "file_count": len(files),
            "total_size_bytes": total_size,
            "total_size_mb": round(total_size / (1024 * 1024), 2),
            "cache_dir": str(self.cache_dir),
        }
