"""YAML front matter parsing for vault articles."""

from __future__ import annotations

import logging
import posixpath
import re
from dataclasses import dataclass, field
from datetime import date, datetime

import frontmatter

from vaultsync.services.datetime_service import format_iso, parse_datetime
from vaultsync.services.slug_service import extract_file_name

logger = logging.getLogger(__name__)

_CREATED_FIELDS = ("created", "created_at", "date")
_UPDATED_FIELDS = ("updated", "updated_at", "modified", "modified_at")
_DESCRIPTION_MAX_LENGTH = 200


@dataclass
class ArticleMetadata:
    """Metadata and body extracted from one article file."""

    title: str
    body: str
    created_at: str
    updated_at: str
    description: str = ""
    category: str | None = None
    tags: list[str] = field(default_factory=list)
    hidden: bool = False


def parse_tags(raw_tags: object | None) -> list[str]:
    """Parse tags from front matter.

    Accepts a YAML list or a comma/space separated string. Obsidian-style
    leading ``#`` is stripped; duplicates are dropped, order is kept.
    """
    if raw_tags is None:
        return []
    if isinstance(raw_tags, str):
        items: list[object] = re.split(r"[,\s]+", raw_tags)
    elif isinstance(raw_tags, list):
        items = raw_tags
    else:
        return []
    result: list[str] = []
    for tag in items:
        tag_str = str(tag).strip().removeprefix("#").strip()
        if tag_str and tag_str not in result:
            result.append(tag_str)
    return result


def directory_category(source_path: str, article_root: str) -> str | None:
    """Category implied by the first directory below the article root.

    ``Article/Tech/post.md`` -> ``Tech``; ``Article/post.md`` -> None.
    """
    relative = source_path.removeprefix(article_root)
    parts = relative.split("/")
    return parts[0] if len(parts) > 1 and parts[0] else None


def generate_description(content: str, max_length: int = _DESCRIPTION_MAX_LENGTH) -> str:
    """Plain-ish text excerpt for article listings.

    Skips headings, fenced code blocks and image embeds (both ``![..](..)`` and ``![[..]]``).
    """
    lines: list[str] = []
    in_code_block = False
    for line in content.split("\n"):
        stripped = line.strip()
        if stripped.startswith("```"):
            in_code_block = not in_code_block
            continue
        if in_code_block or not stripped:
            continue
        if stripped.startswith(("#", "![")):
            continue
        lines.append(stripped)

    text = " ".join(lines)
    if len(text) > max_length:
        text = text[:max_length].rsplit(" ", maxsplit=1)[0] + "..."
    return text


def _first_value(metadata: dict[str, object], keys: tuple[str, ...]) -> object | None:
    for key in keys:
        value = metadata.get(key)
        if value is not None and value != "":
            return value
    return None


def _coerce_timestamp(value: object | None, source_path: str, default_tz: str) -> str | None:
    if value is None:
        return None
    try:
        if isinstance(value, (date, datetime)):
            return format_iso(parse_datetime(value, default_tz=default_tz))
        return format_iso(parse_datetime(str(value), default_tz=default_tz))
    except ValueError:
        logger.warning("Ignoring unparseable timestamp %r in %s", value, source_path)
        return None


def _coerce_flag(value: object | None) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        return value.strip().lower() in ("true", "yes", "on", "1")
    if isinstance(value, int):
        return value != 0
    return False


def _coerce_category(value: object | None) -> str | None:
    if isinstance(value, list):
        value = value[0] if value else None
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_article(
    raw_content: str,
    source_path: str,
    *,
    article_root: str,
    now: str,
    previous_created_at: str | None = None,
    default_tz: str = "UTC",
) -> ArticleMetadata:
    """Parse a markdown file with optional YAML front matter.

    Fallbacks when a field is absent:
    - title: the file name without extension
    - description: an excerpt of the body
    - category: the first directory below ``article_root``
    - created_at: ``previous_created_at`` (an earlier version of the same path), else ``now``
    - updated_at: ``now`` when an earlier version existed, else ``created_at``

    Raises yaml.YAMLError for malformed front matter.
    """
    post = frontmatter.loads(raw_content)
    metadata = dict(post.metadata)

    raw_title = metadata.get("title")
    if raw_title is not None and not isinstance(raw_title, str):
        raw_title = str(raw_title)
    title = raw_title.strip() if raw_title and raw_title.strip() else extract_file_name(source_path)

    raw_description = _first_value(metadata, ("description", "summary"))
    description = (
        str(raw_description).strip()
        if raw_description is not None
        else generate_description(post.content)
    )

    category = _coerce_category(_first_value(metadata, ("category", "categories")))
    if category is None:
        category = directory_category(source_path, article_root)

    created_at = _coerce_timestamp(
        _first_value(metadata, _CREATED_FIELDS), source_path, default_tz
    ) or (previous_created_at or now)
    updated_at = _coerce_timestamp(
        _first_value(metadata, _UPDATED_FIELDS), source_path, default_tz
    ) or (now if previous_created_at is not None else created_at)

    hidden = _coerce_flag(metadata.get("hidden")) or _coerce_flag(metadata.get("draft"))

    return ArticleMetadata(
        title=title,
        body=post.content,
        created_at=created_at,
        updated_at=updated_at,
        description=description,
        category=category,
        tags=parse_tags(metadata.get("tags")),
        hidden=hidden,
    )


def article_relative_path(source_path: str, article_root: str) -> str:
    """Source path below the article root, used to derive slugs."""
    relative = source_path.removeprefix(article_root)
    return posixpath.normpath(relative) if relative else source_path
