"""Local git repository client: reads trees and blobs via the git CLI."""

from __future__ import annotations

import asyncio
import logging
import re
import subprocess
from typing import TYPE_CHECKING

from vaultsync.remote.base import RemoteFetchError, TreeEntry

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

_GIT_TIMEOUT_SECONDS = 30
_REF_RE = re.compile(r"^[A-Za-z0-9._/-]+$")
_OBJECT_ID_RE = re.compile(r"^[0-9a-f]{40}([0-9a-f]{24})?$")


class LocalGitClient:
    """Reads a committed snapshot of a local git repository.

    Only committed content is visible; the working tree is ignored. Blob
    hashes are git object ids, the same identifiers GitHub reports.
    """

    def __init__(self, repo_dir: Path, *, ref: str = "HEAD") -> None:
        # ref listed when none is passed to list_tree
        self.repo_dir = repo_dir
        self.ref = ref

    def _run(self, *args: str) -> subprocess.CompletedProcess[bytes]:
        """Run a git command in the repository, raising RemoteFetchError on failure."""
        try:
            return subprocess.run(
                ["git", *args],
                cwd=self.repo_dir,
                check=True,
                capture_output=True,
                timeout=_GIT_TIMEOUT_SECONDS,
            )
        except subprocess.CalledProcessError as exc:
            stderr = exc.stderr.decode(errors="replace").strip() if exc.stderr else "no stderr"
            raise RemoteFetchError(
                f"git {args[0]} failed (exit {exc.returncode}): {stderr}"
            ) from exc
        except subprocess.TimeoutExpired as exc:
            raise RemoteFetchError(
                f"git {args[0]} timed out after {_GIT_TIMEOUT_SECONDS}s"
            ) from exc
        except FileNotFoundError as exc:
            raise RemoteFetchError("git is not installed") from exc

    def _check_ref(self, ref: str) -> None:
        if not _REF_RE.match(ref) or ref.startswith("-") or ".." in ref:
            raise RemoteFetchError(f"Rejected invalid ref {ref!r}")

    def _list_tree_sync(self, ref: str) -> list[TreeEntry]:
        self._check_ref(ref)
        result = self._run("ls-tree", "-r", "-t", "-z", "--full-tree", ref)
        entries: list[TreeEntry] = []
        for record in result.stdout.split(b"\0"):
            if not record:
                continue
            # "<mode> SP <type> SP <object> TAB <path>"
            meta, _, raw_path = record.partition(b"\t")
            fields = meta.split()
            if len(fields) != 3:
                logger.warning("Skipping malformed ls-tree record: %r", record[:200])
                continue
            _mode, kind, sha = fields
            entries.append(
                TreeEntry(
                    path=raw_path.decode("utf-8", errors="surrogateescape"),
                    content_hash=sha.decode("ascii"),
                    kind=kind.decode("ascii"),
                )
            )
        return entries

    def _cat_blob_sync(self, entry: TreeEntry) -> bytes:
        if not entry.is_file or not _OBJECT_ID_RE.match(entry.content_hash):
            raise RemoteFetchError(f"Rejected invalid blob id for {entry.path}")
        return self._run("cat-file", "blob", entry.content_hash).stdout

    async def list_tree(self, ref: str | None = None) -> list[TreeEntry]:
        return await asyncio.to_thread(self._list_tree_sync, self.ref if ref is None else ref)

    async def get_raw_content(self, entry: TreeEntry) -> bytes:
        return await asyncio.to_thread(self._cat_blob_sync, entry)

    async def get_file_bytes(self, entry: TreeEntry) -> bytes:
        return await asyncio.to_thread(self._cat_blob_sync, entry)

    async def close(self) -> None:
        return None
