"""
Storage backends for the weather cache.

The cache store is the only state shared between scheduled runs. Writers
always overwrite whole entries by key, so no locking is needed.
"""

import json
import os
from abc import ABC, abstractmethod
from typing import Dict, List, Optional

from pydantic import ValidationError

from thundercloud.core.logging import get_logger
from thundercloud.models import CacheEntry

logger = get_logger(__name__)


class CacheStoreError(Exception):
    """Raised when the backing store cannot be read or written."""
    pass


class CacheStore(ABC):
    """Key-value store of cache entries."""

    @abstractmethod
    async def get(self, key: str) -> Optional[CacheEntry]:
        ...

    @abstractmethod
    async def put(self, entry: CacheEntry) -> None:
        ...

    @abstractmethod
    async def delete(self, key: str) -> None:
        ...

    @abstractmethod
    async def entries(self) -> List[CacheEntry]:
        ...


class MemoryCacheStore(CacheStore):
    """In-process store; state lives as long as the process."""

    def __init__(self):
        self._entries: Dict[str, CacheEntry] = {}

    async def get(self, key: str) -> Optional[CacheEntry]:
        return self._entries.get(key)

    async def put(self, entry: CacheEntry) -> None:
        self._entries[entry.key] = entry

    async def delete(self, key: str) -> None:
        self._entries.pop(key, None)

    async def entries(self) -> List[CacheEntry]:
        return list(self._entries.values())


class FileCacheStore(CacheStore):
    """One JSON document per key under a cache directory."""

    SUFFIX = ".json"

    def __init__(self, cache_dir: str):
        self.cache_dir = cache_dir
        os.makedirs(self.cache_dir, exist_ok=True)
        logger.info(f"File cache store at {self.cache_dir}")

    def _path(self, key: str) -> str:
        return os.path.join(self.cache_dir, f"{key}{self.SUFFIX}")

    def _read(self, path: str) -> CacheEntry:
        with open(path, "r", encoding="utf-8") as f:
            return CacheEntry.model_validate(json.load(f))

    async def get(self, key: str) -> Optional[CacheEntry]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            return self._read(path)
        except (OSError, ValueError, ValidationError) as e:
            raise CacheStoreError(f"Failed to read cache entry {key}: {e}") from e

    async def put(self, entry: CacheEntry) -> None:
        path = self._path(entry.key)
        tmp_path = f"{path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                json.dump(entry.model_dump(mode="json"), f)
            os.replace(tmp_path, path)
        except (OSError, TypeError, ValueError) as e:
            raise CacheStoreError(f"Failed to write cache entry {entry.key}: {e}") from e

    async def delete(self, key: str) -> None:
        try:
            os.remove(self._path(key))
        except FileNotFoundError:
            pass
        except OSError as e:
            raise CacheStoreError(f"Failed to delete cache entry {key}: {e}") from e

    def _discard(self, filename: str) -> None:
        try:
            os.remove(os.path.join(self.cache_dir, filename))
        except OSError as e:
            logger.error(f"Failed to remove cache file {filename}: {e}")

    async def entries(self) -> List[CacheEntry]:
        try:
            filenames = sorted(os.listdir(self.cache_dir))
        except OSError as e:
            raise CacheStoreError(f"Failed to list cache directory: {e}") from e

        entries = []
        for filename in filenames:
            if not filename.endswith(self.SUFFIX):
                continue
            try:
                entries.append(self._read(os.path.join(self.cache_dir, filename)))
            except (OSError, ValueError, ValidationError) as e:
                logger.warning(f"Removing unreadable cache file {filename}: {e}")
                self._discard(filename)
        return entries
