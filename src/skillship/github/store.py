"""Remote store interface driven by the deployment stages.

The deployment code never talks HTTP directly. It drives an object that
satisfies RemoteStore, which lets tests substitute an in-memory store.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Protocol, runtime_checkable

from skillship.deploy.models import TreeEntry


@dataclass
class RepositoryInfo:
    """Repository metadata returned by the code-hosting service.

    Attributes:
        name: Short repository name
        full_name: Repository in 'owner/repo' format
        html_url: Browsable URL of the repository
        default_branch: Name of the default branch
        node_id: Global object ID, needed for GraphQL mutations
    """

    name: str
    full_name: str
    html_url: str
    default_branch: str = "main"
    node_id: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> RepositoryInfo:
        return cls(
            name=data["name"],
            full_name=data["full_name"],
            html_url=data["html_url"],
            default_branch=data.get("default_branch") or "main",
            node_id=data.get("node_id"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary representation."""
        return {
            "name": self.name,
            "full_name": self.full_name,
            "html_url": self.html_url,
            "default_branch": self.default_branch,
        }


@runtime_checkable
class RemoteStore(Protocol):
    """Content-addressed object API of a code-hosting service.

    Implementations raise the exceptions from skillship.deploy.errors:
    NameConflictError when a repository name is taken, RefConflictError
    when a ref create/update is rejected, and TransportError for anything
    else that goes wrong on the wire.
    """

    async def get_authenticated_user(self) -> str:
        """Return the login of the user the credential belongs to."""
        ...

    async def get_repository(self, full_name: str) -> RepositoryInfo | None:
        """Return repository metadata, or None if it does not exist."""
        ...

    async def create_repository(
        self, name: str, description: str, private: bool
    ) -> RepositoryInfo:
        """Create an empty repository owned by the authenticated user."""
        ...

    async def list_repositories(self, limit: int = 100) -> list[RepositoryInfo]:
        """List repositories of the authenticated user, most recent first."""
        ...

    async def get_branch_tip(self, full_name: str, branch: str) -> str | None:
        """Return the commit a branch points at, or None if it has no commits."""
        ...

    async def get_commit_tree(self, full_name: str, commit_sha: str) -> str:
        """Return the tree address of a commit."""
        ...

    async def create_blob(self, full_name: str, content: bytes) -> str:
        """Store file bytes and return their content address."""
        ...

    async def create_tree(
        self,
        full_name: str,
        entries: list[TreeEntry],
        base_tree: str | None = None,
    ) -> str:
        """Create a tree, layered on base_tree when given, and return its address."""
        ...

    async def create_commit(
        self,
        full_name: str,
        message: str,
        tree_sha: str,
        parents: list[str],
    ) -> str:
        """Create a commit object and return its address."""
        ...

    async def create_ref(self, full_name: str, branch: str, sha: str) -> None:
        """Create a branch pointing at sha."""
        ...

    async def update_ref(
        self,
        full_name: str,
        branch: str,
        sha: str,
        expected_sha: str,
    ) -> None:
        """Move a branch to sha only if it still points at expected_sha."""
        ...
