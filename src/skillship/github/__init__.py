"""GitHub transport for skill deployments."""

from skillship.github.client import GitHubClient
from skillship.github.store import RemoteStore, RepositoryInfo

__all__ = [
    "GitHubClient",
    "RemoteStore",
    "RepositoryInfo",
]
