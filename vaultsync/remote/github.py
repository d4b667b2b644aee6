"""GitHub REST API client for tree listings and file contents."""

from __future__ import annotations

import base64
import binascii
import logging
from typing import Any
from urllib.parse import quote

import httpx

from vaultsync.remote.base import RemoteFetchError, TreeEntry

logger = logging.getLogger(__name__)

GITHUB_API = "https://api.github.com"
_API_VERSION = "2022-11-28"


class GitHubClient:
    """Reads a repository through the GitHub REST API.

    Args:
        owner: Repository owner (user or organization).
        repo: Repository name.
        ref: Branch, tag or commit listed when no ref is passed to ``list_tree``.
        token: Optional token; required for private repositories.
        api_url: API base URL (GitHub Enterprise installs differ).
        timeout: Per-request timeout in seconds.
        client: Pre-built HTTP client, mainly for tests.
    """

    def __init__(
        self,
        owner: str,
        repo: str,
        *,
        ref: str = "main",
        token: str = "",
        api_url: str = GITHUB_API,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self.owner = owner
        self.repo = repo
        self.ref = ref
        headers = {"X-GitHub-Api-Version": _API_VERSION}
        if token:
            headers["Authorization"] = f"Bearer {token}"
        self._client = client or httpx.AsyncClient(
            base_url=api_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            follow_redirects=True,
        )

    @property
    def _repo_path(self) -> str:
        return f"/repos/{quote(self.owner, safe='')}/{quote(self.repo, safe='')}"

    async def _get(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self._client.get(url, **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise RemoteFetchError(
                f"GitHub returned HTTP {exc.response.status_code} for {exc.request.url}"
            ) from exc
        except httpx.HTTPError as exc:
            raise RemoteFetchError(f"GitHub request failed for {url}: {exc}") from exc
        return response

    async def list_tree(self, ref: str | None = None) -> list[TreeEntry]:
        ref = self.ref if ref is None else ref
        response = await self._get(
            f"{self._repo_path}/git/trees/{quote(ref, safe='')}",
            params={"recursive": "1"},
            headers={"Accept": "application/vnd.github+json"},
        )
        try:
            data = response.json()
            nodes = data["tree"]
        except (ValueError, KeyError, TypeError) as exc:
            raise RemoteFetchError(f"Malformed tree listing for ref {ref!r}") from exc

        if data.get("truncated"):
            logger.warning(
                "Tree listing for %s/%s@%s was truncated by GitHub; some files will be missing",
                self.owner,
                self.repo,
                ref,
            )
        return [
            TreeEntry(path=node["path"], content_hash=node["sha"], kind=node["type"])
            for node in nodes
            if "path" in node and "sha" in node and "type" in node
        ]

    def _blob_url(self, entry: TreeEntry) -> str:
        if not entry.is_file:
            raise RemoteFetchError(f"{entry.path} is not a file")
        return f"{self._repo_path}/git/blobs/{quote(entry.content_hash, safe='')}"

    async def get_raw_content(self, entry: TreeEntry) -> bytes:
        response = await self._get(
            self._blob_url(entry),
            headers={"Accept": "application/vnd.github.raw+json"},
        )
        return response.content

    async def get_file_bytes(self, entry: TreeEntry) -> bytes:
        """Fetch a binary blob.

        The JSON form of the blob API reports the payload as ``base64`` or
        ``utf-8``.
        """
        response = await self._get(
            self._blob_url(entry),
            headers={"Accept": "application/vnd.github+json"},
        )
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteFetchError(f"Malformed blob response for {entry.path}") from exc
        if not isinstance(data, dict) or not isinstance(data.get("content"), str):
            raise RemoteFetchError(f"No content returned for {entry.path}")

        content = data["content"]
        encoding = data.get("encoding")
        if encoding == "base64":
            try:
                return base64.b64decode(content)
            except (binascii.Error, ValueError) as exc:
                raise RemoteFetchError(f"Invalid base64 payload for {entry.path}") from exc
        if encoding == "utf-8":
            return content.encode("utf-8")
        raise RemoteFetchError(f"Unsupported blob encoding {encoding!r} for {entry.path}")

    async def close(self) -> None:
        await self._client.aclose()
