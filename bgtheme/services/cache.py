"""
bgtheme Result Caches
Raw-cluster cache and final theme cache keyed by (image identity, mode),
backed by a JSON state directory or an in-memory store.
"""
import json
import os
import tempfile
import threading
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from loguru import logger

from bgtheme.errors import CacheError
from bgtheme.services.colors.ranking import RankedCandidate
from bgtheme.services.colors.theme import ResolvedTheme

RAW_SUFFIX = "_raw"


def discard_temp_file(tmp_name: Optional[str]) -> None:
    """Remove the leftover of a failed atomic write, if any."""
    if tmp_name is None:
        return
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not remove temporary file {tmp_name}: {e}")


class CacheBackend(ABC):
    """Abstract base class for cache backends. Failures raise CacheError."""

    @abstractmethod
    def get(self, key: str) -> Optional[Any]:
        """Get value from cache, None when absent."""
        pass

    @abstractmethod
    def set(self, key: str, value: Any) -> None:
        """Store a JSON-serializable value."""
        pass

    @abstractmethod
    def delete(self, key: str) -> bool:
        """Delete key from cache."""
        pass

    @abstractmethod
    def exists(self, key: str) -> bool:
        """Check if key exists."""
        pass

    @abstractmethod
    def clear(self) -> int:
        """Clear all cache entries, returning how many were removed."""
        pass


class InMemoryStore(CacheBackend):
    """In-process store. Entries never expire."""

    def __init__(self):
        self._cache: Dict[str, str] = {}

    def get(self, key: str) -> Optional[Any]:
        raw = self._cache.get(key)
        if raw is None:
            return None
        return json.loads(raw)

    def set(self, key: str, value: Any) -> None:
        try:
            self._cache[key] = json.dumps(value)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Cannot serialize cache value for {key}: {e}")

    def delete(self, key: str) -> bool:
        return self._cache.pop(key, None) is not None

    def exists(self, key: str) -> bool:
        return key in self._cache

    def clear(self) -> int:
        count = len(self._cache)
        self._cache.clear()
        return count

    def __len__(self) -> int:
        return len(self._cache)


class FileStateStore(CacheBackend):
    """One JSON file per key inside a state directory."""

    def __init__(self, directory: Union[str, Path]):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        name = key.replace(os.sep, "_")
        if name in ("", ".", ".."):
            raise CacheError(f"Invalid cache key {key!r}")
        return self.directory / name

    def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise CacheError(f"Failed to read cache entry {path}: {e}")

        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise CacheError(f"Corrupt cache entry {path}: {e}")

    def set(self, key: str, value: Any) -> None:
        path = self._path(key)
        try:
            payload = json.dumps(value, indent=2)
        except (TypeError, ValueError) as e:
            raise CacheError(f"Cannot serialize cache value for {key}: {e}")

        tmp_name = None
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self.directory, prefix=".tmp-")
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(tmp_name, path)
        except OSError as e:
            discard_temp_file(tmp_name)
            raise CacheError(f"Failed to write cache entry {path}: {e}")

    def delete(self, key: str) -> bool:
        try:
            self._path(key).unlink()
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            raise CacheError(f"Failed to delete cache entry {key}: {e}")

    def exists(self, key: str) -> bool:
        return self._path(key).is_file()

    def clear(self) -> int:
        if not self.directory.is_dir():
            return 0
        removed = 0
        try:
            for entry in self.directory.iterdir():
                if entry.is_file():
                    entry.unlink()
                    removed += 1
        except OSError as e:
            raise CacheError(f"Failed to clear cache directory {self.directory}: {e}")
        return removed


def cache_key(identity: str, is_dark: bool) -> str:
    """Key of the final cache, e.g. ``_home_me_wall.png_true``."""
    return f"{identity}_{'true' if is_dark else 'false'}"


def raw_cache_key(identity: str, is_dark: bool) -> str:
    return cache_key(identity, is_dark) + RAW_SUFFIX


class ThemeCache:
    """
    The two derivation caches over one backend.

    Reads that fail are logged and reported as misses; writes that fail are
    logged and ignored. Neither ever raises.
    """

    def __init__(self, backend: Optional[CacheBackend] = None,
                 enable_raw: bool = True, enable_final: bool = True):
        self.backend = backend or InMemoryStore()
        self.enable_raw = enable_raw
        self.enable_final = enable_final
        self.stats = {
            'raw_hits': 0, 'raw_misses': 0,
            'final_hits': 0, 'final_misses': 0,
            'errors': 0,
        }
        self._stats_lock = threading.Lock()

    def _count(self, name: str) -> None:
        with self._stats_lock:
            self.stats[name] += 1

    def _read(self, key: str) -> Optional[Any]:
        try:
            return self.backend.get(key)
        except CacheError as e:
            self._count('errors')
            logger.warning(f"Cache read failed for {key}, treating as miss: {e}")
            return None

    def _write(self, key: str, value: Any) -> bool:
        try:
            self.backend.set(key, value)
            return True
        except CacheError as e:
            self._count('errors')
            logger.error(f"Failed to save the result for {key}: {e}")
            return False

    def get_final(self, identity: str, is_dark: bool) -> Optional[ResolvedTheme]:
        """Get a resolved theme from the final cache."""
        if not self.enable_final:
            return None

        key = cache_key(identity, is_dark)
        value = self._read(key)
        theme = None
        if value is not None:
            try:
                theme = ResolvedTheme.from_dict(value)
            except (KeyError, TypeError, ValueError) as e:
                self._count('errors')
                logger.warning(f"Discarding malformed final cache entry {key}: {e}")

        if theme is not None:
            self._count('final_hits')
        else:
            self._count('final_misses')
        return theme

    def set_final(self, identity: str, is_dark: bool, theme: ResolvedTheme) -> bool:
        if not self.enable_final:
            return False
        return self._write(cache_key(identity, is_dark), theme.to_dict())

    def get_raw(self, identity: str, is_dark: bool) -> Optional[List[RankedCandidate]]:
        """Get the weight-ordered centroid list from the raw-cluster cache."""
        if not self.enable_raw:
            return None

        key = raw_cache_key(identity, is_dark)
        value = self._read(key)
        candidates = None
        if value is not None:
            try:
                candidates = [RankedCandidate.from_dict(item) for item in value]
                if not candidates:
                    raise ValueError("empty centroid list")
            except (KeyError, TypeError, ValueError) as e:
                candidates = None
                self._count('errors')
                logger.warning(f"Discarding malformed raw cache entry {key}: {e}")

        if candidates is not None:
            self._count('raw_hits')
        else:
            self._count('raw_misses')
        return candidates

    def set_raw(self, identity: str, is_dark: bool, candidates: List[RankedCandidate]) -> bool:
        if not self.enable_raw:
            return False
        return self._write(raw_cache_key(identity, is_dark), [c.to_dict() for c in candidates])

    def clear(self) -> int:
        try:
            return self.backend.clear()
        except CacheError as e:
            logger.error(f"Failed to clear cache: {e}")
            return 0

    def get_cache_stats(self) -> Dict[str, Any]:
        """Get cache statistics."""
        with self._stats_lock:
            stats = self.stats.copy()

        hit_rates = {}
        for layer in ['raw', 'final']:
            hits = stats[f'{layer}_hits']
            misses = stats[f'{layer}_misses']
            total = hits + misses
            hit_rates[layer] = hits / total if total > 0 else 0.0

        return {
            'stats': stats,
            'hit_rates': hit_rates,
            'enabled': {'raw': self.enable_raw, 'final': self.enable_final},
        }
