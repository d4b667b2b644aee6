"""Pluggable content store backends."""

from vaultsync.storage.base import CacheKey, ContentStore
from vaultsync.storage.disk import FileStore
from vaultsync.storage.memory import MemoryStore
from vaultsync.storage.sql import SqlStore

__all__ = [
    "CacheKey",
    "ContentStore",
    "FileStore",
    "MemoryStore",
    "SqlStore",
]
