"""Tests for the document compilers."""

from __future__ import annotations

import json

import httpx
import pytest

from vaultsync.pandoc.compiler import CompileError, PandocCompiler, RawCompiler, media_type_for

AST = {"pandoc-api-version": [1, 23, 1], "meta": {}, "blocks": [{"t": "Para", "c": []}]}


class FakeServer:
    """Stands in for PandocServer; counts restarts."""

    base_url = "http://pandoc.test"

    def __init__(self, fail_restart: bool = False) -> None:
        self.restarts = 0
        self.fail_restart = fail_restart

    async def ensure_running(self) -> None:
        self.restarts += 1
        if self.fail_restart:
            raise RuntimeError("pandoc not found")


def _compiler(handler: httpx.MockTransport, server: FakeServer | None = None) -> PandocCompiler:
    return PandocCompiler(
        server or FakeServer(),  # type: ignore[arg-type]
        client=httpx.AsyncClient(transport=handler),
    )


def _ok(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={"output": json.dumps(AST), "messages": []})


class TestRawCompiler:
    async def test_encodes_text(self) -> None:
        assert await RawCompiler().compile("# 标题") == "# 标题".encode()
        assert RawCompiler.format == "raw"


class TestMediaType:
    def test_known_formats(self) -> None:
        assert media_type_for("raw") == "text/markdown; charset=utf-8"
        assert media_type_for("pandoc-json") == "application/json"

    def test_unknown_format(self) -> None:
        assert media_type_for("other") == "application/octet-stream"


class TestPandocCompiler:
    async def test_posts_markdown_and_returns_ast(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return _ok(request)

        compiler = _compiler(httpx.MockTransport(handler))
        document = await compiler.compile("Hello *world*")
        await compiler.close()

        assert json.loads(document) == AST
        payload = json.loads(seen[0].content)
        assert payload["text"] == "Hello *world*"
        assert payload["to"] == "json"
        assert payload["from"].startswith("gfm")
        assert seen[0].headers["Accept"] == "application/json"
        assert str(seen[0].url) == "http://pandoc.test/"

    async def test_pandoc_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"error": "Unknown reader: gfm+bogus"})

        compiler = _compiler(httpx.MockTransport(handler))
        with pytest.raises(CompileError, match="Unknown reader"):
            await compiler.compile("x")

    async def test_non_json_response_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="oops")

        compiler = _compiler(httpx.MockTransport(handler))
        with pytest.raises(CompileError, match="non-JSON"):
            await compiler.compile("x")

    async def test_output_must_be_json(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"output": "<p>html</p>"})

        compiler = _compiler(httpx.MockTransport(handler))
        with pytest.raises(CompileError, match="not a JSON document"):
            await compiler.compile("x")

    async def test_timeout_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout("slow", request=request)

        compiler = _compiler(httpx.MockTransport(handler))
        with pytest.raises(CompileError, match="timed out"):
            await compiler.compile("x")

    async def test_restarts_server_and_retries_once(self) -> None:
        calls = 0

        def handler(request: httpx.Request) -> httpx.Response:
            nonlocal calls
            calls += 1
            if calls == 1:
                raise httpx.ConnectError("refused", request=request)
            return _ok(request)

        server = FakeServer()
        compiler = _compiler(httpx.MockTransport(handler), server)
        document = await compiler.compile("x")

        assert json.loads(document) == AST
        assert server.restarts == 1
        assert calls == 2

    async def test_failed_restart_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        compiler = _compiler(httpx.MockTransport(handler), FakeServer(fail_restart=True))
        with pytest.raises(CompileError, match="could not be restarted"):
            await compiler.compile("x")

    async def test_still_unreachable_after_restart(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        server = FakeServer()
        compiler = _compiler(httpx.MockTransport(handler), server)
        with pytest.raises(CompileError, match="after restart"):
            await compiler.compile("x")
        assert server.restarts == 1
