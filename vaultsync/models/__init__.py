"""SQLAlchemy ORM models for VaultSync."""

from vaultsync.models.base import Base
from vaultsync.models.cache import CacheEntry

__all__ = [
    "Base",
    "CacheEntry",
]
