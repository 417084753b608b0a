"""
Persistent store adapters.

The core treats persistence as an opaque key/value store of JSON blobs:
``get(key)`` returns the decoded value or ``None``, ``set(key, value)``
overwrites the whole blob. Backend errors surface as
``PersistenceFailureError``; a failed write never touches the blob that was
stored before it.
"""

import asyncio
import json
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

from redis import asyncio as aioredis
from redis.exceptions import RedisError

from tripjournal.config.settings import StoreBackend, StoreSettings
from tripjournal.core.exceptions import PersistenceFailureError

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Async store of JSON-serializable values keyed by name."""

    async def get(self, key: str) -> Optional[Any]:
        raise NotImplementedError

    async def set(self, key: str, value: Any) -> None:
        raise NotImplementedError

    async def close(self) -> None:
        return None


def _encode(key: str, value: Any) -> str:
    try:
        return json.dumps(value)
    except (TypeError, ValueError) as e:
        raise PersistenceFailureError(key, f"value is not JSON serializable: {e}") from e


def _decode(key: str, raw: Optional[str]) -> Optional[Any]:
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError as e:
        raise PersistenceFailureError(key, f"stored value is not valid JSON: {e}") from e


class InMemoryStore(KeyValueStore):
    """Process-local store. Values are kept in their encoded form so reads never alias writes."""

    def __init__(self):
        self._data: Dict[str, str] = {}

    async def get(self, key: str) -> Optional[Any]:
        return _decode(key, self._data.get(key))

    async def set(self, key: str, value: Any) -> None:
        self._data[key] = _encode(key, value)

    def keys(self):
        return list(self._data)


class JsonFileStore(KeyValueStore):
    """
    One JSON file per key inside a directory.

    Writes go to a temporary file which is then renamed over the target, so a
    crash mid-write leaves the previous blob intact.
    """

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        safe = "".join(c if c.isalnum() or c in "-_." else "_" for c in key)
        return self.directory / f"{safe}.json"

    async def get(self, key: str) -> Optional[Any]:
        path = self._path(key)
        try:
            raw = await asyncio.to_thread(self._read, path)
        except OSError as e:
            raise PersistenceFailureError(key, str(e)) from e
        return _decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        payload = _encode(key, value)
        try:
            await asyncio.to_thread(self._write, self._path(key), payload)
        except OSError as e:
            raise PersistenceFailureError(key, str(e)) from e
        logger.debug(f"Persisted key: {key}")

    @staticmethod
    def _read(path: Path) -> Optional[str]:
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    @staticmethod
    def _write(path: Path, payload: str) -> None:
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp = path.with_suffix(path.suffix + ".tmp")
        tmp.write_text(payload, encoding="utf-8")
        os.replace(tmp, path)


class RedisStore(KeyValueStore):
    """
    Redis-backed store with lazy connection management.

    Unlike a cache, a failed write is an error the caller must see, so
    failures are raised as ``PersistenceFailureError`` rather than swallowed.
    """

    def __init__(self, redis_url: Optional[str] = None, client=None, socket_timeout: float = 5.0):
        self.redis_url = redis_url
        self.redis_client = client
        self.socket_timeout = socket_timeout
        self.logger = logging.getLogger(__name__)
        self._connection_lock = asyncio.Lock()

    async def _ensure_client(self):
        if self.redis_client is not None:
            return self.redis_client
        async with self._connection_lock:
            if self.redis_client is None:
                self.logger.info(f"Connecting to Redis at {self.redis_url}")
                self.redis_client = aioredis.from_url(
                    self.redis_url,
                    encoding="utf-8",
                    decode_responses=True,
                    socket_timeout=self.socket_timeout,
                    socket_connect_timeout=self.socket_timeout,
                    retry_on_timeout=True,
                )
        return self.redis_client

    async def get(self, key: str) -> Optional[Any]:
        client = await self._ensure_client()
        try:
            raw = await client.get(key)
        except (RedisError, OSError) as e:
            self.logger.warning(f"Error getting key '{key}': {str(e)}")
            raise PersistenceFailureError(key, str(e)) from e
        return _decode(key, raw)

    async def set(self, key: str, value: Any) -> None:
        payload = _encode(key, value)
        client = await self._ensure_client()
        try:
            result = await client.set(key, payload)
        except (RedisError, OSError) as e:
            self.logger.warning(f"Error setting key '{key}': {str(e)}")
            raise PersistenceFailureError(key, str(e)) from e
        if not result:
            raise PersistenceFailureError(key, "Redis rejected the write")

    async def close(self) -> None:
        async with self._connection_lock:
            if self.redis_client is not None:
                try:
                    await self.redis_client.aclose()
                    self.logger.info("Disconnected from Redis")
                except (RedisError, OSError) as e:
                    self.logger.warning(f"Error during Redis disconnect: {str(e)}")
                finally:
                    self.redis_client = None


def create_store(store_settings: StoreSettings) -> KeyValueStore:
    """Build the store backend selected in settings."""
    if store_settings.backend == StoreBackend.MEMORY:
        return InMemoryStore()
    if store_settings.backend == StoreBackend.REDIS:
        return RedisStore(store_settings.redis_url, socket_timeout=store_settings.socket_timeout)
    return JsonFileStore(store_settings.get_data_dir())
