"""Path validation for deployment file sets."""

from __future__ import annotations

from collections.abc import Iterable

from skillship.deploy.errors import InvalidInputError
from skillship.deploy.models import FileEntry


def normalize_path(path: str) -> str:
    """Validate a repository-relative POSIX path.

    Args:
        path: Path as submitted

    Returns:
        The path with surrounding whitespace removed

    Raises:
        InvalidInputError: If the path is empty, absolute, uses backslashes,
            or contains empty, '.' or '..' segments
    """
    cleaned = path.strip() if isinstance(path, str) else ""
    if not cleaned:
        raise InvalidInputError("File path must not be empty")
    if "\x00" in cleaned:
        raise InvalidInputError(f"File path contains a NUL byte: {cleaned!r}")
    if "\\" in cleaned:
        raise InvalidInputError(f"File path must use '/' separators: {cleaned}")
    if cleaned.startswith("/"):
        raise InvalidInputError(f"File path must be relative: {cleaned}")

    for segment in cleaned.split("/"):
        if segment in ("", ".", ".."):
            raise InvalidInputError(f"Invalid segment {segment!r} in file path: {cleaned}")

    return cleaned


def join_base_path(base_path: str | None, unit_name: str) -> str:
    """Compute the folder a deployment unit is placed in.

    Leading and trailing slashes are trimmed from base_path. A missing or
    blank base path places the unit at the repository root.
    """
    unit = normalize_path(unit_name)
    if "/" in unit:
        raise InvalidInputError(f"Deployment name must be a single path segment: {unit}")
    base = (base_path or "").strip().strip("/")
    if not base:
        return unit
    return f"{normalize_path(base)}/{unit}"


def validate_entries(entries: Iterable[FileEntry]) -> list[FileEntry]:
    """Check a submission before any remote call is made.

    Returns:
        The entries in submission order with normalized paths

    Raises:
        InvalidInputError: If the set is empty, a path is malformed, or two
            entries share a path
    """
    validated: list[FileEntry] = []
    seen: set[str] = set()

    for entry in entries:
        path = normalize_path(entry.path)
        if path in seen:
            raise InvalidInputError(f"Duplicate file path in submission: {path}")
        seen.add(path)
        validated.append(FileEntry(path=path, content=entry.content, executable=entry.executable))

    if not validated:
        raise InvalidInputError("Deployment must contain at least one file")

    return validated
