"""Manifest reconciliation: diff a remote tree against the cached manifest.

Change detection is by content hash. A file whose hash is still present is
unchanged, even if it moved; a hash with no cached counterpart is fetched;
cached entries whose hash disappeared are deleted.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, Protocol, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from vaultsync.remote.base import TreeEntry

logger = logging.getLogger(__name__)


class ManifestEntry(Protocol):
    @property
    def source_path(self) -> str: ...

    @property
    def content_hash(self) -> str: ...


E = TypeVar("E", bound=ManifestEntry)


@dataclass
class FetchItem(Generic[E]):
    """A tree entry to fetch, with the cached entry previously at the same path."""

    entry: TreeEntry
    previous: E | None = None


@dataclass
class ReconcilePlan(Generic[E]):
    """Disjoint classification of one reconciliation.

    ``unchanged`` and ``to_fetch`` together describe the next manifest;
    ``to_delete`` lists cached entries it no longer carries; ``skipped``
    lists tree entries whose storage key was already claimed by other content.
    """

    unchanged: list[E] = field(default_factory=list)
    to_fetch: list[FetchItem[E]] = field(default_factory=list)
    to_delete: list[E] = field(default_factory=list)
    skipped: list[TreeEntry] = field(default_factory=list)


def reconcile(
    tree: Sequence[TreeEntry],
    previous: Sequence[E],
    *,
    key_for: Callable[[str, str], str],
    relocate: Callable[[E, str], E],
    force_refetch: bool = False,
) -> ReconcilePlan[E]:
    """Classify ``tree`` against the ``previous`` manifest entries.

    Args:
        tree: Blob entries of the remote tree that belong to this content type.
        previous: Entries of the current manifest.
        key_for: Maps ``(source_path, content_hash)`` to a storage key.
        relocate: Returns a cached entry moved to a new source path.
        force_refetch: Treat every cached entry as stale (e.g. the cached
            content was compiled to a different format).

    A cached entry matches at most one tree entry. Matches at the same path
    take precedence; remaining hash matches are renames, carried forward via
    ``relocate`` unless the move changes the entry's storage key.
    """
    plan: ReconcilePlan[E] = ReconcilePlan()
    files = [entry for entry in tree if entry.is_file]
    by_path: dict[str, E] = {entry.source_path: entry for entry in previous}

    pool: dict[str, list[E]] = defaultdict(list)
    if not force_refetch:
        for cached in previous:
            pool[cached.content_hash].append(cached)

    carried: set[int] = set()
    matches: dict[int, E] = {}

    # exact matches first, so a copy elsewhere cannot steal an entry from its own path
    for index, entry in enumerate(files):
        for cached in pool.get(entry.content_hash, ()):
            if cached.source_path == entry.path and id(cached) not in carried:
                carried.add(id(cached))
                matches[index] = cached
                break

    for index, entry in enumerate(files):
        if index in matches:
            continue
        for cached in pool.get(entry.content_hash, ()):
            if id(cached) not in carried:
                carried.add(id(cached))
                matches[index] = cached
                break

    claimed: dict[str, str] = {}
    pending: list[FetchItem[E]] = []
    for index, entry in enumerate(files):
        cached = matches.get(index)
        if cached is None:
            pending.append(FetchItem(entry=entry, previous=by_path.get(entry.path)))
            continue
        moved = relocate(cached, entry.path)
        if key_for(moved.source_path, moved.content_hash) != key_for(
            cached.source_path, cached.content_hash
        ):
            carried.discard(id(cached))
            pending.append(FetchItem(entry=entry, previous=by_path.get(entry.path)))
            continue
        if moved is not cached:
            logger.info("Carrying %s forward as %s", cached.source_path, entry.path)
        plan.unchanged.append(moved)
        claimed[key_for(moved.source_path, moved.content_hash)] = moved.content_hash

    for item in pending:
        key = key_for(item.entry.path, item.entry.content_hash)
        owner = claimed.get(key)
        if owner is not None and owner != item.entry.content_hash:
            logger.warning(
                "Skipping %s: storage key %s is already used by other content",
                item.entry.path,
                key,
            )
            plan.skipped.append(item.entry)
            continue
        claimed[key] = item.entry.content_hash
        plan.to_fetch.append(item)

    plan.to_delete = [cached for cached in previous if id(cached) not in carried]
    return plan
