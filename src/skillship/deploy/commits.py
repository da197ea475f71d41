"""Commit writing stage."""

from __future__ import annotations

import logging

from skillship.deploy.models import Commit
from skillship.github.store import RemoteStore

logger = logging.getLogger(__name__)

DEFAULT_SIGNATURE = "Skillship"


def initial_commit_message(signature: str = DEFAULT_SIGNATURE) -> str:
    """Message of the root commit of a new repository."""
    return f"Initial skill setup\n\nCreated with {signature}"


def update_commit_message(name: str, signature: str = DEFAULT_SIGNATURE) -> str:
    """Message of a commit that adds a skill to an existing repository."""
    return f"Add skill: {name}\n\nCreated with {signature}"


class CommitWriter:
    """Creates exactly one commit per deployment attempt.

    Retried attempts produce new commit objects; nothing is deduplicated.
    """

    def __init__(self, store: RemoteStore) -> None:
        self._store = store

    async def write(
        self,
        full_name: str,
        tree_sha: str,
        parent_sha: str | None,
        message: str,
    ) -> Commit:
        parents = [parent_sha] if parent_sha else []
        sha = await self._store.create_commit(full_name, message, tree_sha, parents)
        logger.debug(
            f"Created commit {sha[:7]} in {full_name} "
            f"(parent: {parent_sha[:7] if parent_sha else 'none'})"
        )
        return Commit(sha=sha, tree_sha=tree_sha, parent_sha=parent_sha, message=message)
