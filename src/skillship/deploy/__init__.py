"""Atomic multi-file commit builder for skill deployments."""

from skillship.deploy.errors import (
    DeployError,
    FastForwardConflictError,
    InvalidInputError,
    NameConflictError,
    RefConflictError,
    RepositoryNotFoundError,
    TransportError,
)
from skillship.deploy.models import (
    BranchRef,
    Commit,
    Deployment,
    DeploymentResult,
    DeploymentTarget,
    ErrorKind,
    ExistingRepository,
    FileEntry,
    NewRepository,
    TreeEntry,
)
from skillship.deploy.orchestrator import DeploymentOrchestrator

__all__ = [
    "BranchRef",
    "Commit",
    "DeployError",
    "Deployment",
    "DeploymentOrchestrator",
    "DeploymentResult",
    "DeploymentTarget",
    "ErrorKind",
    "ExistingRepository",
    "FastForwardConflictError",
    "FileEntry",
    "InvalidInputError",
    "NameConflictError",
    "NewRepository",
    "RefConflictError",
    "RepositoryNotFoundError",
    "TransportError",
    "TreeEntry",
]
