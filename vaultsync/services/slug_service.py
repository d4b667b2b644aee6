"""Slug generation for article URLs and image file names."""

from __future__ import annotations

import posixpath
import re
import unicodedata

from pypinyin import Style, lazy_pinyin

_MARKUP_EXT_RE = re.compile(r"\.(md|markdown)$", re.IGNORECASE)
_CJK_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff]")
_SEPARATOR = "-"


def _fold_ascii(char: str) -> str:
    """Fold a Latin letter with diacritics to ASCII (NFKD), or '' if it has no ASCII form."""
    return unicodedata.normalize("NFKD", char).encode("ascii", "ignore").decode("ascii")


def generate_slug(path: str) -> str:
    """Generate a URL-safe slug from a source path.

    - Strip a trailing .md / .markdown
    - Runs of ASCII letters and digits form one token; accented Latin letters
      fold to ASCII (NFKD) and join the run
    - Each CJK ideograph becomes its own token, transliterated to toneless pinyin
    - Any other character ends the current token and emits a separator
    - Join with hyphens, collapse repeats, strip leading/trailing hyphens, lowercase

    Pure and deterministic: the same path always yields the same slug.
    """
    clean = _MARKUP_EXT_RE.sub("", path)
    parts: list[str] = []
    run = ""

    for char in clean:
        folded = _fold_ascii(char) if not char.isascii() else char
        if folded and folded.isascii() and folded.isalnum():
            run += folded
            continue

        if run:
            parts.append(run)
            run = ""
        syllables = lazy_pinyin(char, style=Style.NORMAL) if _CJK_RE.match(char) else []
        # pypinyin echoes characters it has no reading for
        if syllables and all(s.isascii() and s.isalnum() for s in syllables):
            parts.extend(syllables)
        else:
            parts.append(_SEPARATOR)

    if run:
        parts.append(run)

    text = _SEPARATOR.join(parts)
    text = re.sub(r"-+", _SEPARATOR, text)
    return text.strip(_SEPARATOR).lower()


def extract_file_name(path: str) -> str:
    """Return the file name of a path without its extension.

    ``Article/Notes/My Post.md`` -> ``My Post``
    """
    name = posixpath.basename(path)
    stem, _ext = posixpath.splitext(name)
    return stem or name


def sanitize_file_name(file_name: str) -> str:
    """Normalize an attachment file name for use in URLs and store keys.

    Lowercases, turns whitespace runs into single hyphens, collapses repeated
    hyphens and strips leading/trailing hyphens. Idempotent.
    """
    text = re.sub(r"\s+", _SEPARATOR, file_name.strip().lower())
    text = re.sub(r"-+", _SEPARATOR, text)
    return text.strip(_SEPARATOR)
