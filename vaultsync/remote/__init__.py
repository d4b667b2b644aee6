"""Remote repository clients."""

from vaultsync.remote.base import RemoteFetchError, RemoteRepositoryClient, TreeEntry
from vaultsync.remote.git_local import LocalGitClient
from vaultsync.remote.github import GitHubClient

__all__ = [
    "GitHubClient",
    "LocalGitClient",
    "RemoteFetchError",
    "RemoteRepositoryClient",
    "TreeEntry",
]
