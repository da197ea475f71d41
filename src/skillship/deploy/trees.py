"""Tree composition stage."""

from __future__ import annotations

import logging

from skillship.deploy.models import TreeEntry
from skillship.github.store import RemoteStore

logger = logging.getLogger(__name__)


class TreeComposer:
    """Builds the single tree object of a deployment.

    Without a base tree the result is a full snapshot holding exactly the
    given entries. With a base tree the entries are layered onto it: paths
    that already exist are overwritten and everything else in the base
    tree is kept.
    """

    def __init__(self, store: RemoteStore) -> None:
        self._store = store

    async def compose(
        self,
        full_name: str,
        entries: list[TreeEntry],
        base_tree: str | None = None,
    ) -> str:
        """Create the tree and return its address."""
        if base_tree:
            logger.debug(f"Layering {len(entries)} entries onto tree {base_tree[:7]} in {full_name}")
        else:
            logger.debug(f"Creating snapshot tree with {len(entries)} entries in {full_name}")
        return await self._store.create_tree(full_name, entries, base_tree=base_tree)
