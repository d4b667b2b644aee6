"""Shared test fixtures for VaultSync."""

from __future__ import annotations

import asyncio
import hashlib
import subprocess
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

import pytest
from httpx import ASGITransport, AsyncClient

from vaultsync.config import Settings
from vaultsync.main import create_app
from vaultsync.pandoc.compiler import RawCompiler
from vaultsync.remote.base import RemoteFetchError, TreeEntry
from vaultsync.runtime import Runtime
from vaultsync.services.sync_service import SyncService
from vaultsync.storage.memory import MemoryStore

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator
    from pathlib import Path

TEST_SYNC_TOKEN = "test-sync-token-with-at-least-32-characters"


def git_blob_sha(data: bytes) -> str:
    """Object id git assigns to a blob with this content."""
    return hashlib.sha1(b"blob %d\0" % len(data) + data).hexdigest()


def init_git_repo(repo: Path, files: dict[str, str | bytes]) -> Path:
    """Create a git repository at ``repo`` with ``files`` committed on ``main``."""
    for rel_path, data in files.items():
        target = repo / rel_path
        target.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(data, str):
            target.write_text(data, encoding="utf-8")
        else:
            target.write_bytes(data)
    subprocess.run(["git", "init", "-q", "-b", "main"], cwd=repo, check=True, capture_output=True)
    git_commit(repo, "initial")
    return repo


def git_commit(repo: Path, message: str) -> None:
    """Stage everything in ``repo`` and commit it."""
    identity = ["-c", "user.name=Test", "-c", "user.email=test@example.com"]
    for args in (["add", "-A"], ["commit", "-q", "-m", message]):
        subprocess.run(["git", *identity, *args], cwd=repo, check=True, capture_output=True)


class FakeRemote:
    """In-memory remote repository.

    Blobs are content-addressed and outlive the paths that named them, as in
    git. Records the path of every content fetch, can fail chosen paths, can hold
    a listing at ``list_gate``, and tracks how many fetches are in flight at once.
    """

    def __init__(self, files: dict[str, str | bytes] | None = None) -> None:
        self.files: dict[str, bytes] = {}
        self.blobs: dict[str, bytes] = {}
        for path, data in (files or {}).items():
            self.put(path, data)
        self.fetches: list[str] = []
        self.fail_paths: set[str] = set()
        self.list_error: Exception | None = None
        self.list_gate: asyncio.Event | None = None
        self.delay = 0.0
        self.in_flight = 0
        self.max_in_flight = 0
        self.closed = False

    def put(self, path: str, data: str | bytes) -> str:
        """Add or replace a file; returns its content hash."""
        content = data.encode("utf-8") if isinstance(data, str) else data
        self.files[path] = content
        sha = git_blob_sha(content)
        self.blobs[sha] = content
        return sha

    def remove(self, path: str) -> None:
        del self.files[path]

    def hash_of(self, path: str) -> str:
        return git_blob_sha(self.files[path])

    async def list_tree(self, ref: str) -> list[TreeEntry]:
        if self.list_error is not None:
            raise self.list_error
        entries: list[TreeEntry] = []
        dirs: set[str] = set()
        for path in sorted(self.files):
            parent = path.rpartition("/")[0]
            while parent and parent not in dirs:
                dirs.add(parent)
                entries.append(TreeEntry(path=parent, content_hash=f"tree-{parent}", kind="tree"))
                parent = parent.rpartition("/")[0]
            entries.append(TreeEntry(path=path, content_hash=self.hash_of(path), kind="blob"))
        if self.list_gate is not None:
            # the snapshot is taken; hold the listing until the gate opens
            await self.list_gate.wait()
        return entries

    async def _fetch(self, entry: TreeEntry) -> bytes:
        path = entry.path
        self.fetches.append(path)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            await asyncio.sleep(self.delay)
            if path in self.fail_paths or entry.content_hash not in self.blobs:
                raise RemoteFetchError(f"Simulated fetch failure for {path}")
            return self.blobs[entry.content_hash]
        finally:
            self.in_flight -= 1

    async def get_raw_content(self, entry: TreeEntry) -> bytes:
        return await self._fetch(entry)

    async def get_file_bytes(self, entry: TreeEntry) -> bytes:
        return await self._fetch(entry)

    async def close(self) -> None:
        self.closed = True


@pytest.fixture
def store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def remote() -> FakeRemote:
    return FakeRemote()


@pytest.fixture
def sync_service(store: MemoryStore, remote: FakeRemote) -> SyncService:
    return SyncService(store, remote, RawCompiler(), concurrency=4)


@pytest.fixture
def test_settings() -> Settings:
    """Settings for an in-process app; nothing touches the network or disk."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        debug=True,
        github_owner="octo",
        github_repo="vault",
        pipeline_mode="raw",
        store_backend="memory",
        sync_on_startup=False,
        sync_token=TEST_SYNC_TOKEN,
    )


def make_runtime(store: MemoryStore, remote: FakeRemote) -> Runtime:
    compiler = RawCompiler()
    return Runtime(
        store=store,
        remote=remote,
        compiler=compiler,
        sync_service=SyncService(store, remote, compiler),
    )


@asynccontextmanager
async def create_test_client(
    settings: Settings, runtime: Runtime
) -> AsyncGenerator[AsyncClient]:
    """HTTP test client for an app wired to ``runtime``.

    ASGITransport does not run the lifespan, so the prebuilt runtime is
    handed to ``create_app`` directly.
    """
    app = create_app(settings, runtime=runtime)
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac
