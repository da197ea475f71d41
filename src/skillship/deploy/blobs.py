"""Blob writing stage.

Turns each submitted file into a content-addressed blob. Blob writes have
no ordering dependency on each other and are issued concurrently; the
first failure aborts the whole stage.
"""

from __future__ import annotations

import asyncio
import logging

from skillship.deploy.models import FileEntry, TreeEntry
from skillship.github.store import RemoteStore

logger = logging.getLogger(__name__)


class BlobWriter:
    """Writes the blobs of one deployment.

    Args:
        store: Remote store to write to
        max_concurrency: Upper bound on in-flight blob writes (None for no bound)
        timeout: Per-call timeout in seconds (None to rely on the store)
    """

    def __init__(
        self,
        store: RemoteStore,
        max_concurrency: int | None = None,
        timeout: float | None = None,
    ) -> None:
        self._store = store
        self._max_concurrency = max_concurrency
        self._timeout = timeout

    async def write_all(
        self,
        full_name: str,
        entries: list[FileEntry],
        prefix: str | None = None,
    ) -> list[TreeEntry]:
        """Create one blob per entry.

        Args:
            full_name: Repository in 'owner/repo' format
            entries: Validated file entries
            prefix: Folder the entries are placed under in the tree

        Returns:
            Tree entries in the same order as the submitted files
        """
        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None

        async def write_one(entry: FileEntry) -> TreeEntry:
            if semaphore is not None:
                async with semaphore:
                    sha = await self._create(full_name, entry)
            else:
                sha = await self._create(full_name, entry)
            path = f"{prefix}/{entry.path}" if prefix else entry.path
            return TreeEntry(path=path, mode=entry.mode, sha=sha)

        tasks = [asyncio.ensure_future(write_one(entry)) for entry in entries]
        try:
            tree_entries = await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            raise

        logger.debug(f"Wrote {len(tree_entries)} blobs to {full_name}")
        return list(tree_entries)

    async def _create(self, full_name: str, entry: FileEntry) -> str:
        call = self._store.create_blob(full_name, entry.content)
        if self._timeout is None:
            return await call
        return await asyncio.wait_for(call, timeout=self._timeout)
