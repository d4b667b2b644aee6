"""Filesystem-backed content store.

Keys map to paths below the store root, so ``images/<name>`` is a plain file
that a static file server could publish as-is.
"""

from __future__ import annotations

import asyncio
import logging
import os
import tempfile
from typing import TYPE_CHECKING

from vaultsync.exceptions import StoreError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class FileStore:
    """Stores each key as a file under ``root``.

    Writes go to a temporary file in the target directory and are moved into
    place with ``os.replace``, so a concurrent reader never sees a partial file.
    """

    def __init__(self, root: Path) -> None:
        self.root = root

    def init(self) -> None:
        """Create the store root if needed."""
        if self.root.exists() and not self.root.is_dir():
            raise NotADirectoryError(f"Store path exists but is not a directory: {self.root}")
        if not self.root.exists():
            self.root.mkdir(parents=True)
            logger.info("Created content store directory at %s", self.root)

    def path_for(self, key: str) -> Path:
        """Resolve a key to a path inside the store root.

        Raises StoreError if the key is empty or would escape the root.
        """
        parts = key.split("/")
        if not key or any(part in ("", ".", "..") for part in parts):
            raise StoreError(f"Invalid store key: {key!r}")
        full_path = (self.root / key).resolve()
        if not full_path.is_relative_to(self.root.resolve()):
            raise StoreError(f"Path traversal detected: {key!r}")
        return full_path

    async def get(self, key: str) -> bytes | None:
        path = self.path_for(key)
        try:
            return await asyncio.to_thread(path.read_bytes)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"Failed to read {key}: {exc}") from exc

    async def set(self, key: str, value: bytes) -> None:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(_atomic_write, path, value)
        except OSError as exc:
            raise StoreError(f"Failed to write {key}: {exc}") from exc

    async def remove(self, key: str) -> bool:
        path = self.path_for(key)
        try:
            await asyncio.to_thread(path.unlink)
        except FileNotFoundError:
            return False
        except OSError as exc:
            raise StoreError(f"Failed to delete {key}: {exc}") from exc
        return True

    async def close(self) -> None:
        return None


def _atomic_write(path: Path, value: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        dir=path.parent, prefix=f".{path.name}.", suffix=".tmp", delete=False
    ) as tmp:
        tmp.write(value)
        tmp_name = tmp.name
    try:
        os.replace(tmp_name, path)
    except OSError:
        os.unlink(tmp_name)
        raise
