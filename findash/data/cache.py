"""
Persistent cache tier for API responses
One JSON record per cache key, stored through a pluggable storage backend
"""

import asyncio
import json
import os
import re
import tempfile
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, List, Optional

from ..utils import get_logger

logger = get_logger(__name__)

_UNSAFE_KEY_CHARS = re.compile(r'[^a-z0-9._-]')

def get_cache_key(prefix: str, *params: str) -> str:
    """
    Build a namespaced, case-normalized cache key

    get_cache_key("quote", "AAPL") -> "quote_aapl"
    get_cache_key("news", "AAPL", "7d") -> "news_aapl_7d"
    """
    if not params:
        raise ValueError("get_cache_key needs at least one parameter")
    return "_".join([prefix, *(str(p) for p in params)]).lower()

@dataclass
class CacheEntry:
    """
    A cached value stamped with its write time (epoch seconds)

    ttl is None for records read back from disk: the persisted format
    carries no TTL, the caller supplies one when judging freshness.
    """
    data: Any
    timestamp: float
    ttl: Optional[float] = None

    def age_seconds(self, now: Optional[float] = None) -> float:
        return (time.time() if now is None else now) - self.timestamp

    def is_expired(self, now: Optional[float] = None, ttl: Optional[float] = None) -> bool:
        """Valid iff age < ttl"""
        ttl = self.ttl if ttl is None else ttl
        if ttl is None:
            return False
        return self.age_seconds(now) >= ttl

    def to_record(self) -> dict:
        """Persisted form: {timestamp: epoch-millis, data: ...}"""
        return {'timestamp': int(self.timestamp * 1000), 'data': self.data}

    @classmethod
    def from_record(cls, record: Any) -> 'CacheEntry':
        if not isinstance(record, dict) or 'timestamp' not in record or 'data' not in record:
            raise ValueError("Malformed cache record")
        return cls(data=record['data'], timestamp=float(record['timestamp']) / 1000)

class StorageBackend(ABC):
    """Filesystem-like medium; every call may fail"""

    @abstractmethod
    async def exists(self, name: str) -> bool:
        pass

    @abstractmethod
    async def read(self, name: str) -> Optional[str]:
        """Contents of name, None when it does not exist"""
        pass

    @abstractmethod
    async def write(self, name: str, content: str):
        pass

    @abstractmethod
    async def remove(self, name: str) -> bool:
        """Delete name, True when something was deleted"""
        pass

    @abstractmethod
    async def list_names(self) -> List[str]:
        pass

class FileStorage(StorageBackend):
    """
    Directory-backed storage
    Blocking file I/O runs in the default executor so the event loop
    keeps serving other requests.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    async def _run(self, func: Callable, *args):
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(None, func, *args)

    def _path(self, name: str) -> Path:
        return self.root / name

    async def exists(self, name: str) -> bool:
        return await self._run(self._path(name).exists)

    def _read_sync(self, name: str) -> Optional[str]:
        try:
            return self._path(name).read_text(encoding='utf-8')
        except FileNotFoundError:
            return None

    async def read(self, name: str) -> Optional[str]:
        return await self._run(self._read_sync, name)

    def _write_sync(self, name: str, content: str):
        self.root.mkdir(parents=True, exist_ok=True)
        # Write then rename so readers never see a partial record
        fd, tmp_path = tempfile.mkstemp(dir=self.root, prefix=".tmp-", suffix=".json")
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                f.write(content)
            os.replace(tmp_path, self._path(name))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    async def write(self, name: str, content: str):
        await self._run(self._write_sync, name, content)

    def _remove_sync(self, name: str) -> bool:
        try:
            self._path(name).unlink()
            return True
        except FileNotFoundError:
            return False

    async def remove(self, name: str) -> bool:
        return await self._run(self._remove_sync, name)

    def _list_sync(self) -> List[str]:
        if not self.root.exists():
            return []
        return [p.name for p in self.root.glob("*.json") if not p.name.startswith(".tmp-")]

    async def list_names(self) -> List[str]:
        return await self._run(self._list_sync)

class PersistentCache:
    """
    Durable cache tier, best-effort

    Reads fail soft (treated as absent); writes and removals log their
    failures and report them through the return value. Nothing here ever
    raises into the request path.
    """

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    @staticmethod
    def file_name(key: str) -> str:
        """Lowercase, filesystem-safe record name for key"""
        return f"{_UNSAFE_KEY_CHARS.sub('_', key.lower())}.json"

    async def read(self, key: str) -> Optional[CacheEntry]:
        name = self.file_name(key)
        try:
            raw = await self.storage.read(name)
            if raw is None:
                return None
            return CacheEntry.from_record(json.loads(raw))
        except Exception as e:
            logger.error(f"Failed to read cache record {name}: {e}")
            return None

    async def write(self, key: str, entry: CacheEntry) -> bool:
        name = self.file_name(key)
        try:
            await self.storage.write(name, json.dumps(entry.to_record(), indent=2))
            logger.debug(f"Persisted {key}")
            return True
        except Exception as e:
            logger.error(f"Failed to write cache record {name}: {e}")
            return False

    async def remove(self, key: str) -> bool:
        name = self.file_name(key)
        try:
            return await self.storage.remove(name)
        except Exception as e:
            logger.error(f"Failed to remove cache record {name}: {e}")
            return False

    async def count(self) -> int:
        try:
            return len(await self.storage.list_names())
        except Exception as e:
            logger.warning(f"Failed to count cache records: {e}")
            return 0

    async def clear(self) -> int:
        """Remove every record, returns how many were removed"""
        try:
            names = await self.storage.list_names()
        except Exception as e:
            logger.error(f"Failed to list cache records: {e}")
            return 0

        removed = 0
        for name in names:
            try:
                if await self.storage.remove(name):
                    removed += 1
            except Exception as e:
                logger.error(f"Failed to remove cache record {name}: {e}")
        return removed
