"""Document compilers: turn processed markdown into the bytes that get cached."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Protocol

import httpx

if TYPE_CHECKING:
    from vaultsync.pandoc.server import PandocServer
    from vaultsync.schemas.manifest import ContentFormat

logger = logging.getLogger(__name__)

_MEDIA_TYPES: dict[str, str] = {
    "raw": "text/markdown; charset=utf-8",
    "pandoc-json": "application/json",
}

_PANDOC_READER = "gfm+tex_math_dollars+footnotes+raw_html"


class CompileError(RuntimeError):
    """Raised when a document cannot be compiled (server unreachable, timeout, parse error)."""


def media_type_for(content_format: str) -> str:
    """HTTP content type of cached article content in ``content_format``."""
    return _MEDIA_TYPES.get(content_format, "application/octet-stream")


class DocumentCompiler(Protocol):
    format: ContentFormat

    async def compile(self, markdown: str) -> bytes: ...

    async def close(self) -> None: ...


class RawCompiler:
    """Stores the processed markdown text as-is."""

    format: ContentFormat = "raw"

    async def compile(self, markdown: str) -> bytes:
        return markdown.encode("utf-8")

    async def close(self) -> None:
        return None


class PandocCompiler:
    """Compiles markdown to the Pandoc JSON AST through a ``pandoc server``."""

    format: ContentFormat = "pandoc-json"

    def __init__(
        self,
        server: PandocServer,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._server = server
        self._timeout = timeout
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def _post(self, payload: dict[str, object]) -> httpx.Response:
        url = f"{self._server.base_url}/"
        headers = {"Accept": "application/json"}
        try:
            return await self._client.post(url, json=payload, headers=headers)
        except httpx.ConnectError:
            logger.warning("pandoc server unreachable, restarting before retry")
            try:
                await self._server.ensure_running()
            except RuntimeError as exc:
                raise CompileError(f"pandoc server could not be restarted: {exc}") from exc
            try:
                return await self._client.post(url, json=payload, headers=headers)
            except httpx.HTTPError as exc:
                raise CompileError(f"pandoc server unreachable after restart: {exc}") from exc
        except httpx.TimeoutException:
            raise CompileError(f"pandoc conversion timed out after {self._timeout}s") from None
        except httpx.HTTPError as exc:
            raise CompileError(f"pandoc request failed: {exc}") from exc

    async def compile(self, markdown: str) -> bytes:
        payload: dict[str, object] = {"text": markdown, "from": _PANDOC_READER, "to": "json"}
        response = await self._post(payload)
        try:
            data = response.json()
        except ValueError:
            raise CompileError(
                f"pandoc server returned non-JSON response (HTTP {response.status_code})"
            ) from None
        if not isinstance(data, dict):
            raise CompileError("pandoc server returned an unexpected payload")
        if "error" in data:
            raise CompileError(f"pandoc error: {str(data['error'])[:200]}")
        for message in data.get("messages") or []:
            logger.debug("pandoc: %s", message)

        output = data.get("output", "")
        # the AST arrives as a JSON string; validate it before caching
        try:
            document = json.loads(output)
        except (TypeError, ValueError):
            raise CompileError("pandoc output is not a JSON document") from None
        return json.dumps(document, ensure_ascii=False, separators=(",", ":")).encode("utf-8")

    async def close(self) -> None:
        await self._client.aclose()
