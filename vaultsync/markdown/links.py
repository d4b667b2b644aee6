"""Rewriting of Obsidian wiki-style embeds into standard markdown."""

from __future__ import annotations

import posixpath
import re

from vaultsync.services.slug_service import sanitize_file_name

IMAGE_URL_PREFIX = "/image/"

_WIKI_EMBED_RE = re.compile(r"!\[\[([^\]]+)\]\]")


def image_url(file_name: str) -> str:
    """Public URL of a cached image."""
    return f"{IMAGE_URL_PREFIX}{sanitize_file_name(file_name)}"


def rewrite_wiki_images(content: str) -> str:
    """Rewrite ``![[Name]]`` embeds to ``![Name](/image/sanitized-name)``.

    The embed target may carry a vault path (``Attachment/a.png``) and an
    Obsidian display suffix (``a.png|300``); only the bare file name is kept.
    Already-rewritten content has no wiki embeds left, so rewriting is idempotent.
    """

    def _replace(match: re.Match[str]) -> str:
        target = match.group(1).split("|", 1)[0].strip()
        file_name = posixpath.basename(target) or target
        if not sanitize_file_name(file_name):
            return match.group(0)
        return f"![{file_name}]({image_url(file_name)})"

    return _WIKI_EMBED_RE.sub(_replace, content)
