"""Tests for runtime wiring."""

from __future__ import annotations

from typing import TYPE_CHECKING
from unittest.mock import AsyncMock, patch

import pytest

from vaultsync.config import Settings
from vaultsync.pandoc.compiler import PandocCompiler, RawCompiler
from vaultsync.remote.git_local import LocalGitClient
from vaultsync.remote.github import GitHubClient
from vaultsync.runtime import build_remote, open_runtime, open_store
from vaultsync.storage.disk import FileStore
from vaultsync.storage.memory import MemoryStore
from vaultsync.storage.sql import SqlStore

if TYPE_CHECKING:
    from pathlib import Path


def _settings(**overrides: object) -> Settings:
    fields: dict[str, object] = {"github_owner": "octo", "github_repo": "vault"}
    fields.update(overrides)
    return Settings(_env_file=None, **fields)  # type: ignore[arg-type]


class TestOpenStore:
    async def test_memory(self) -> None:
        assert isinstance(await open_store(_settings()), MemoryStore)

    async def test_disk_creates_directory(self, tmp_path: Path) -> None:
        store = await open_store(_settings(store_backend="disk", store_dir=tmp_path / "c"))
        assert isinstance(store, FileStore)
        assert (tmp_path / "c").is_dir()

    async def test_sql(self, tmp_path: Path) -> None:
        url = f"sqlite+aiosqlite:///{tmp_path / 'cache.db'}"
        store = await open_store(_settings(store_backend="sql", database_url=url))
        try:
            assert isinstance(store, SqlStore)
            assert await store.get("missing") is None
        finally:
            await store.close()


class TestBuildRemote:
    async def test_github(self) -> None:
        remote = build_remote(_settings(remote_ref="release"))
        assert isinstance(remote, GitHubClient)
        assert (remote.owner, remote.repo, remote.ref) == ("octo", "vault", "release")
        await remote.close()

    def test_git(self, tmp_path: Path) -> None:
        remote = build_remote(_settings(remote_backend="git", local_repo_dir=tmp_path))
        assert isinstance(remote, LocalGitClient)
        assert remote.repo_dir == tmp_path

    def test_git_without_directory(self) -> None:
        with pytest.raises(ValueError, match="LOCAL_REPO_DIR"):
            build_remote(_settings(remote_backend="git"))


class TestOpenRuntime:
    async def test_raw_mode_skips_pandoc(self) -> None:
        async with open_runtime(_settings(pipeline_mode="raw")) as runtime:
            assert isinstance(runtime.compiler, RawCompiler)
            assert runtime.pandoc_server is None
            assert runtime.sync_service.concurrency == 8

    async def test_document_mode_starts_and_stops_pandoc(self) -> None:
        with (
            patch("vaultsync.runtime.PandocServer.start", new_callable=AsyncMock) as mock_start,
            patch("vaultsync.runtime.PandocServer.stop", new_callable=AsyncMock) as mock_stop,
        ):
            async with open_runtime(_settings(pandoc_port=4321)) as runtime:
                assert isinstance(runtime.compiler, PandocCompiler)
                assert runtime.pandoc_server is not None
                assert runtime.pandoc_server.port == 4321
            mock_start.assert_awaited_once()
            mock_stop.assert_awaited_once()

    async def test_pandoc_failure_closes_resources(self) -> None:
        with (
            patch(
                "vaultsync.runtime.PandocServer.start",
                new_callable=AsyncMock,
                side_effect=RuntimeError("pandoc not found"),
            ),
            patch("vaultsync.runtime.GitHubClient.close", new_callable=AsyncMock) as mock_close,
            pytest.raises(RuntimeError, match="pandoc not found"),
        ):
            async with open_runtime(_settings()):
                pass
        mock_close.assert_awaited_once()

    async def test_bad_remote_config_opens_no_store(self) -> None:
        with (
            patch("vaultsync.runtime.open_store", new_callable=AsyncMock) as mock_open,
            pytest.raises(ValueError, match="LOCAL_REPO_DIR"),
        ):
            async with open_runtime(_settings(remote_backend="git", store_backend="sql")):
                pass
        mock_open.assert_not_awaited()

    async def test_store_failure_closes_remote(self) -> None:
        with (
            patch(
                "vaultsync.runtime.open_store",
                new_callable=AsyncMock,
                side_effect=OSError("database locked"),
            ),
            patch("vaultsync.runtime.GitHubClient.close", new_callable=AsyncMock) as mock_close,
            pytest.raises(OSError, match="database locked"),
        ):
            async with open_runtime(_settings(pipeline_mode="raw")):
                pass
        mock_close.assert_awaited_once()
