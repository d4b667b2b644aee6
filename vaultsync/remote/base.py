"""Remote repository client interface."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


class RemoteFetchError(RuntimeError):
    """Raised when the remote repository cannot list a tree or return a file."""


@dataclass(frozen=True)
class TreeEntry:
    """One node of a recursive tree listing."""

    path: str
    content_hash: str
    kind: str  # "blob" or "tree"

    @property
    def is_file(self) -> bool:
        return self.kind == "blob"


class RemoteRepositoryClient(Protocol):
    """Read-only access to a versioned remote source.

    Content is fetched by the blob id a listing reported, never by path at a
    moving ref, so the bytes always match ``TreeEntry.content_hash``.
    """

    async def list_tree(self, ref: str) -> list[TreeEntry]:
        """Recursively list every entry reachable from ``ref``."""
        ...

    async def get_raw_content(self, entry: TreeEntry) -> bytes:
        """Return the raw bytes of a text blob, addressed by its object id."""
        ...

    async def get_file_bytes(self, entry: TreeEntry) -> bytes:
        """Return the bytes of a binary blob, addressed by its object id."""
        ...

    async def close(self) -> None:
        ...
