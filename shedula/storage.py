# shedula/storage.py
# Key-value surfaces the local stores persist into. The variant is picked once
# by build_storage(); call sites never check their environment themselves.
import logging
import os
import re
from typing import Dict, Optional

import redis

from .config import Settings

logger = logging.getLogger(__name__)


class KeyValueStorage:
    """get/set-by-key string storage."""

    available = True
    name = "abstract"

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    name = "memory"

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value


class UnavailableStorage(KeyValueStorage):
    """Host exposes no persistent storage: reads are empty, writes are dropped."""

    available = False
    name = "none"

    def get(self, key: str) -> Optional[str]:
        return None

    def set(self, key: str, value: str) -> None:
        logger.debug(f"Storage unavailable, dropping write to '{key}'")


_SAFE_KEY = re.compile(r"[^A-Za-z0-9_.-]")


class FileStorage(KeyValueStorage):
    """One UTF-8 file per key inside a directory."""

    name = "file"

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, _SAFE_KEY.sub("_", key) + ".json")

    def get(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not os.path.exists(path):
            return None
        try:
            with open(path, "r", encoding="utf-8") as f:
                return f.read()
        except OSError as e:
            logger.error(f"Failed to read storage key '{key}' from {path}: {e}")
            return None

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        tmp_path = path + ".tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(value)
            os.replace(tmp_path, path)
        except OSError as e:
            logger.error(f"Failed to write storage key '{key}' to {path}: {e}")


class RedisStorage(KeyValueStorage):
    name = "redis"

    def __init__(self, client: "redis.Redis"):
        self.client = client

    @classmethod
    def from_url(cls, url: str) -> "RedisStorage":
        return cls(redis.Redis.from_url(url, decode_responses=True))

    def get(self, key: str) -> Optional[str]:
        try:
            value = self.client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis read failed for key '{key}': {e}")
            return None
        if isinstance(value, bytes):
            value = value.decode("utf-8")
        return value

    def set(self, key: str, value: str) -> None:
        try:
            self.client.set(key, value)
        except redis.RedisError as e:
            logger.error(f"Redis write failed for key '{key}': {e}")


def build_storage(settings: Settings) -> KeyValueStorage:
    """Select the storage variant for this process from configuration."""
    backend = settings.storage_backend
    if backend == "memory":
        return MemoryStorage()
    if backend == "none":
        return UnavailableStorage()
    if backend == "redis":
        if not settings.redis_url:
            logger.warning("STORAGE_BACKEND=redis but REDIS_URL is not set; local storage disabled")
            return UnavailableStorage()
        try:
            storage = RedisStorage.from_url(settings.redis_url)
            storage.client.ping()
            return storage
        except redis.RedisError as e:
            logger.warning(f"Redis not available ({e}); local storage disabled")
            return UnavailableStorage()
    try:
        return FileStorage(settings.storage_dir)
    except OSError as e:
        logger.warning(f"Storage directory {settings.storage_dir} not usable ({e}); local storage disabled")
        return UnavailableStorage()
