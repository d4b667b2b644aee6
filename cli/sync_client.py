"""CLI client for a running VaultSync server."""

from __future__ import annotations

import argparse
import json
import os
import sys
from typing import Any
from urllib.parse import urlparse

import httpx

TOKEN_ENV = "VAULTSYNC_SYNC_TOKEN"
_LOCALHOST_HOSTS = {"localhost", "127.0.0.1", "::1"}


class VaultSyncClient:
    """Client for the VaultSync HTTP API."""

    def __init__(
        self,
        server_url: str,
        token: str | None = None,
        *,
        timeout: float = 300.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        headers = {"Authorization": f"Bearer {token}"} if token else {}
        self.client = httpx.Client(
            base_url=server_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> VaultSyncClient:
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    def sync(self) -> dict[str, Any]:
        """Trigger a sync and return the run report."""
        resp = self.client.post("/api/sync")
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def status(self) -> dict[str, Any]:
        resp = self.client.get("/api/sync/status")
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result

    def list_articles(
        self, *, category: str | None = None, tag: str | None = None, order: str = "created"
    ) -> dict[str, Any]:
        params = {"order": order}
        if category:
            params["category"] = category
        if tag:
            params["tag"] = tag
        resp = self.client.get("/api/article/list", params=params)
        resp.raise_for_status()
        result: dict[str, Any] = resp.json()
        return result


def validate_server_url(server_url: str, allow_insecure_http: bool = False) -> str:
    """Validate server URL and enforce HTTPS for non-localhost hosts by default."""
    normalized = server_url.strip().rstrip("/")
    parsed = urlparse(normalized)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ValueError("Server URL must include scheme and host (e.g. https://example.com)")

    hostname = parsed.hostname
    if parsed.scheme == "http" and not allow_insecure_http and hostname not in _LOCALHOST_HOSTS:
        raise ValueError(
            "HTTPS is required for non-localhost servers. "
            "Use --allow-insecure-http only on trusted networks."
        )

    return normalized


def format_report(report: dict[str, Any]) -> str:
    """Human-readable rendering of a sync report."""
    lines = [f"Sync {'succeeded' if report.get('ok') else 'finished with failures'}"]
    for kind in ("images", "articles"):
        summary = report.get(kind) or {}
        lines.append(
            f"  {kind:<9} fetched={summary.get('fetched', 0)} "
            f"unchanged={summary.get('unchanged', 0)} deleted={summary.get('deleted', 0)} "
            f"failed={summary.get('failed', 0)} skipped={summary.get('skipped', 0)}"
        )
        for failure in summary.get("failures", []):
            lines.append(f"    ! {failure['source_path']}: {failure['reason']}")
    return "\n".join(lines)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point."""
    parser = argparse.ArgumentParser(
        prog="vaultsync-client",
        description="Trigger and inspect syncs on a VaultSync server",
    )
    parser.add_argument("--server", "-s", default="http://localhost:8000", help="Server URL")
    parser.add_argument(
        "--allow-insecure-http",
        action="store_true",
        help="Allow http:// server URLs for non-localhost hosts",
    )
    parser.add_argument("--token", help=f"Sync token (default: ${TOKEN_ENV})")
    parser.add_argument("--json", action="store_true", help="Print raw JSON responses")

    subparsers = parser.add_subparsers(dest="command")
    subparsers.add_parser("sync", help="Run a sync now")
    subparsers.add_parser("status", help="Show the last sync report")
    list_parser = subparsers.add_parser("list", help="List published articles")
    list_parser.add_argument("--category")
    list_parser.add_argument("--tag")
    list_parser.add_argument("--order", choices=["created", "updated"], default="created")

    args = parser.parse_args(argv)
    if args.command is None:
        parser.print_help()
        return

    try:
        server_url = validate_server_url(args.server, args.allow_insecure_http)
    except ValueError as exc:
        print(f"Error: {exc}")
        sys.exit(1)

    token = args.token or os.environ.get(TOKEN_ENV)
    if args.command in {"sync", "status"} and not token:
        print(f"Error: a sync token is required (--token or ${TOKEN_ENV})")
        sys.exit(1)

    with VaultSyncClient(server_url, token) as client:
        try:
            if args.command == "sync":
                result = client.sync()
            elif args.command == "status":
                result = client.status()
            else:
                result = client.list_articles(
                    category=args.category, tag=args.tag, order=args.order
                )
        except httpx.HTTPStatusError as exc:
            print(f"Error: server returned {exc.response.status_code}")
            sys.exit(1)
        except httpx.HTTPError as exc:
            print(f"Error: request failed: {exc}")
            sys.exit(1)

    if args.json:
        print(json.dumps(result, indent=2, ensure_ascii=False))
        return

    if args.command == "sync":
        print(format_report(result))
        if not result.get("ok"):
            sys.exit(2)
    elif args.command == "status":
        print(f"Running: {'yes' if result.get('running') else 'no'}")
        last = result.get("last_report")
        print(format_report(last) if last else "No sync has completed yet")
    else:
        print(f"{result['total']} articles (last update {result.get('last_update') or 'never'})")
        for article in result["articles"]:
            category = f" [{article['category']}]" if article.get("category") else ""
            print(f"  {article['created_at'][:10]}  {article['slug']}{category}  {article['name']}")


if __name__ == "__main__":
    main()
