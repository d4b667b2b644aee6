"""Application-level exception types.

Convention:
- ``InternalServerError``: for errors whose details must never reach clients
  (corrupt manifests, cache entries missing from the store, etc.).
  The global handler logs the full message at ERROR and returns a generic
  "Internal server error" (500) to the client.
- ``StoreError``: a content store backend failed to read, write or delete a key.
  During sync it is contained per file; on the read path it becomes a 500.
- ``ValueError``: for validation errors that are safe to forward to clients.
"""

from __future__ import annotations


class InternalServerError(Exception):
    """Raised for internal errors whose details must not be exposed to clients.

    The global exception handler in ``vaultsync/main.py`` catches this, logs
    the full message server-side, and returns HTTP 500 with a generic
    ``"Internal server error"`` detail.
    """


class ManifestCorruptError(InternalServerError):
    """The stored manifest could not be deserialized.

    Does not heal on its own; the next sync rebuilds the manifest from scratch.
    """


class ContentMissingError(InternalServerError):
    """A manifest entry references content that is not in the store."""


class StoreError(RuntimeError):
    """A content store operation failed."""
