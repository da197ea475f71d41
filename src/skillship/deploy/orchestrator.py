"""Deployment orchestrator.

Sequences the blob, tree, commit and ref stages for both target shapes:

New repository:
    check name -> create repository -> blobs -> snapshot tree
    -> root commit -> create ref

Existing repository:
    resolve default branch -> read tip -> read base tree -> blobs
    -> layered tree -> commit on tip -> advance ref (expecting tip)

Both tracks share the same stages and differ only in the presence of a
base tree and parent, and in whether the ref is created or advanced.
Every failure stops the remaining stages and is reported as a single
DeploymentResult. Nothing is made reachable from the branch unless the
ref write succeeds, so a failed attempt never publishes a partial commit.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import TYPE_CHECKING, TypeVar

from skillship.deploy.blobs import BlobWriter
from skillship.deploy.commits import (
    DEFAULT_SIGNATURE,
    CommitWriter,
    initial_commit_message,
    update_commit_message,
)
from skillship.deploy.errors import (
    DeployError,
    InvalidInputError,
    NameConflictError,
    RepositoryNotFoundError,
    TransportError,
)
from skillship.deploy.models import (
    Deployment,
    DeploymentResult,
    DeploymentTarget,
    ErrorKind,
    ExistingRepository,
    FileEntry,
    NewRepository,
)
from skillship.deploy.paths import join_base_path, validate_entries
from skillship.deploy.refs import RefMover
from skillship.deploy.trees import TreeComposer
from skillship.github.store import RemoteStore

if TYPE_CHECKING:
    from skillship.config.app import SkillshipConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

MAX_REPOSITORY_NAME_LENGTH = 100


@dataclass
class _Plan:
    """Where and how the shared stages write for one attempt."""

    full_name: str
    branch: str
    location: str
    message: str
    prefix: str | None = None
    base_tree: str | None = None
    parent_sha: str | None = None


class DeploymentOrchestrator:
    """Publishes a deployment as one atomic commit.

    Args:
        store: Remote store the deployment is written to
        request_timeout: Timeout in seconds for every individual remote call
        deploy_timeout: Optional timeout in seconds for the whole attempt
        max_blob_concurrency: Upper bound on parallel blob writes
        commit_signature: Origin named in commit messages
    """

    def __init__(
        self,
        store: RemoteStore,
        request_timeout: float | None = 30.0,
        deploy_timeout: float | None = None,
        max_blob_concurrency: int | None = None,
        commit_signature: str = DEFAULT_SIGNATURE,
    ) -> None:
        self._store = store
        self._request_timeout = request_timeout
        self._deploy_timeout = deploy_timeout
        self._commit_signature = commit_signature
        self._blobs = BlobWriter(store, max_concurrency=max_blob_concurrency, timeout=request_timeout)
        self._trees = TreeComposer(store)
        self._commits = CommitWriter(store)

    @classmethod
    def from_config(cls, store: RemoteStore, config: SkillshipConfig) -> DeploymentOrchestrator:
        """Create an orchestrator using timeouts and limits from configuration."""
        return cls(
            store,
            request_timeout=config.github.request_timeout,
            deploy_timeout=config.deploy.deploy_timeout,
            max_blob_concurrency=config.deploy.max_blob_concurrency,
            commit_signature=config.deploy.commit_signature,
        )

    async def deploy(self, deployment: Deployment, target: DeploymentTarget) -> DeploymentResult:
        """Run one deployment attempt.

        Never raises for deployment failures; every error is converted into
        an unsuccessful DeploymentResult.
        """
        try:
            if self._deploy_timeout is not None:
                return await asyncio.wait_for(
                    self._run(deployment, target), timeout=self._deploy_timeout
                )
            return await self._run(deployment, target)
        except DeployError as e:
            logger.warning(f"Deployment of {deployment.name} failed ({e.kind.value}): {e}")
            return DeploymentResult.fail(e.kind, str(e))
        except TimeoutError:
            logger.warning(f"Deployment of {deployment.name} timed out after {self._deploy_timeout}s")
            return DeploymentResult.fail(
                ErrorKind.TRANSPORT_FAILURE,
                f"Deployment timed out after {self._deploy_timeout} seconds",
            )
        except Exception as e:
            logger.error(f"Unexpected error deploying {deployment.name}: {e}", exc_info=True)
            return DeploymentResult.fail(
                ErrorKind.TRANSPORT_FAILURE,
                f"Unexpected deployment error: {e}",
            )

    async def _run(self, deployment: Deployment, target: DeploymentTarget) -> DeploymentResult:
        # All input checks happen before the first remote call
        entries = validate_entries(deployment.files)

        if isinstance(target, NewRepository):
            _validate_repository_name(target.name)
            plan = await self._prepare_new(deployment, target)
        elif isinstance(target, ExistingRepository):
            prefix = join_base_path(target.base_path, deployment.name)
            _validate_full_name(target)
            plan = await self._prepare_existing(deployment, target, prefix)
        else:
            raise InvalidInputError(f"Unsupported deployment target: {type(target).__name__}")

        return await self._publish(entries, plan)

    async def _prepare_new(self, deployment: Deployment, target: NewRepository) -> _Plan:
        owner = target.owner or await self._call("resolve user", self._store.get_authenticated_user())
        full_name = f"{owner}/{target.name}"

        # Advisory only; a create race is caught again when the ref is written
        existing = await self._call("check name", self._store.get_repository(full_name))
        if existing is not None:
            raise NameConflictError(
                f"Repository {full_name} already exists. "
                "Choose a different name or deploy to an existing repository."
            )

        description = target.description
        if not description and deployment.description:
            description = f"Agent Skill: {deployment.description}"

        repo = await self._call(
            "create repository",
            self._store.create_repository(target.name, description, target.private),
        )
        logger.info(f"Created repository {repo.full_name}")

        return _Plan(
            full_name=repo.full_name,
            branch=repo.default_branch,
            location=repo.html_url,
            message=initial_commit_message(self._commit_signature),
        )

    async def _prepare_existing(
        self,
        deployment: Deployment,
        target: ExistingRepository,
        prefix: str,
    ) -> _Plan:
        repo = await self._call("resolve repository", self._store.get_repository(target.full_name))
        if repo is None:
            raise RepositoryNotFoundError(f"Repository {target.full_name} not found")

        branch = repo.default_branch
        tip = await self._call("read branch tip", self._store.get_branch_tip(repo.full_name, branch))

        base_tree = None
        if tip is not None:
            base_tree = await self._call(
                "read base tree", self._store.get_commit_tree(repo.full_name, tip)
            )
        else:
            logger.info(f"Branch {branch} of {repo.full_name} has no commits, writing a full snapshot")

        return _Plan(
            full_name=repo.full_name,
            branch=branch,
            location=f"{repo.html_url}/tree/{branch}/{prefix}",
            message=update_commit_message(deployment.name, self._commit_signature),
            prefix=prefix,
            base_tree=base_tree,
            parent_sha=tip,
        )

    async def _publish(self, entries: list[FileEntry], plan: _Plan) -> DeploymentResult:
        try:
            tree_entries = await self._blobs.write_all(plan.full_name, entries, prefix=plan.prefix)
        except TimeoutError:
            raise TransportError(
                f"Writing blobs to {plan.full_name} timed out after {self._request_timeout} seconds"
            ) from None

        tree_sha = await self._call(
            "compose tree",
            self._trees.compose(plan.full_name, tree_entries, base_tree=plan.base_tree),
        )
        commit = await self._call(
            "write commit",
            self._commits.write(plan.full_name, tree_sha, plan.parent_sha, plan.message),
        )

        mover = RefMover(self._store)
        if commit.is_root:
            await self._call("create ref", mover.create(plan.full_name, plan.branch, commit.sha))
        else:
            await self._call(
                "update ref",
                mover.advance(plan.full_name, plan.branch, commit.sha, plan.parent_sha),
            )

        logger.info(f"Deployed {len(entries)} files to {plan.full_name} ({commit.sha[:7]})")
        return DeploymentResult.ok(plan.location, full_name=plan.full_name, commit_sha=commit.sha)

    async def _call(self, stage: str, call: Awaitable[T]) -> T:
        """Await one remote stage, bounded by the request timeout."""
        logger.debug(f"Stage: {stage}")
        if self._request_timeout is None:
            return await call
        try:
            return await asyncio.wait_for(call, timeout=self._request_timeout)
        except TimeoutError:
            raise TransportError(
                f"Stage '{stage}' timed out after {self._request_timeout} seconds"
            ) from None


def _validate_repository_name(name: str) -> None:
    if not name or not name.strip():
        raise InvalidInputError("Repository name must not be empty")
    if "/" in name:
        raise InvalidInputError(f"Repository name must not contain '/': {name}")
    if len(name) > MAX_REPOSITORY_NAME_LENGTH:
        raise InvalidInputError(
            f"Repository name must be {MAX_REPOSITORY_NAME_LENGTH} characters or less"
        )


def _validate_full_name(target: ExistingRepository) -> None:
    if not target.owner or not target.repo or "/" in target.repo:
        raise InvalidInputError(f"Repository must be given as 'owner/repo', got: {target.full_name!r}")
