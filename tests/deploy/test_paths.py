"""Tests for deployment path validation and data models."""

import pytest

from skillship.deploy.errors import InvalidInputError, TransportError
from skillship.deploy.models import (
    MODE_EXECUTABLE,
    MODE_FILE,
    DeploymentResult,
    ErrorKind,
    ExistingRepository,
    FileEntry,
    NewRepository,
    TreeEntry,
)
from skillship.deploy.paths import join_base_path, normalize_path, validate_entries

pytestmark = pytest.mark.unit


class TestNormalizePath:
    """Tests for normalize_path function."""

    def test_valid_paths(self) -> None:
        assert normalize_path("SKILL.md") == "SKILL.md"
        assert normalize_path("scripts/run.py") == "scripts/run.py"
        assert normalize_path("  references/GUIDE.md ") == "references/GUIDE.md"

    @pytest.mark.parametrize(
        "path",
        ["", "   ", "/SKILL.md", "../SKILL.md", "a/../b", "a//b", "./a", "a/", "a\\b", "a\x00b"],
    )
    def test_invalid_paths(self, path: str) -> None:
        with pytest.raises(InvalidInputError):
            normalize_path(path)


class TestJoinBasePath:
    """Tests for join_base_path function."""

    def test_no_base_path(self) -> None:
        assert join_base_path(None, "demo-skill") == "demo-skill"
        assert join_base_path("", "demo-skill") == "demo-skill"
        assert join_base_path("/", "demo-skill") == "demo-skill"

    def test_base_path(self) -> None:
        assert join_base_path("skills", "demo-skill") == "skills/demo-skill"
        assert join_base_path("/skills/", "demo-skill") == "skills/demo-skill"
        assert join_base_path("a/b", "demo-skill") == "a/b/demo-skill"

    def test_rejects_nested_unit_name(self) -> None:
        with pytest.raises(InvalidInputError):
            join_base_path("skills", "a/b")

    def test_rejects_traversal_in_base(self) -> None:
        with pytest.raises(InvalidInputError):
            join_base_path("../outside", "demo-skill")


class TestValidateEntries:
    """Tests for validate_entries function."""

    def test_keeps_order(self) -> None:
        entries = [FileEntry(path="b", content="1"), FileEntry(path="a", content="2")]
        assert [e.path for e in validate_entries(entries)] == ["b", "a"]

    def test_empty(self) -> None:
        with pytest.raises(InvalidInputError, match="at least one file"):
            validate_entries([])

    def test_duplicate(self) -> None:
        entries = [FileEntry(path="SKILL.md", content="1"), FileEntry(path="SKILL.md", content="2")]
        with pytest.raises(InvalidInputError, match="Duplicate file path in submission: SKILL.md"):
            validate_entries(entries)

    def test_duplicate_after_normalization(self) -> None:
        entries = [FileEntry(path="SKILL.md", content="1"), FileEntry(path=" SKILL.md", content="2")]
        with pytest.raises(InvalidInputError):
            validate_entries(entries)


class TestModels:
    """Tests for deployment data classes."""

    def test_file_entry_encodes_strings(self) -> None:
        entry = FileEntry(path="SKILL.md", content="héllo")
        assert entry.content == "héllo".encode()
        assert entry.mode == MODE_FILE

    def test_file_entry_keeps_bytes(self) -> None:
        entry = FileEntry(path="logo.png", content=b"\x89PNG", executable=True)
        assert entry.content == b"\x89PNG"
        assert entry.mode == MODE_EXECUTABLE

    def test_tree_entry_to_api(self) -> None:
        entry = TreeEntry(path="a", mode=MODE_FILE, sha="abc")
        assert entry.to_api() == {"path": "a", "mode": "100644", "type": "blob", "sha": "abc"}

    def test_targets(self) -> None:
        assert NewRepository(name="demo").private is False
        assert NewRepository(name="demo", visibility="private").private is True
        target = ExistingRepository(full_name="user/hub")
        assert target.owner == "user"
        assert target.repo == "hub"

    def test_result_to_dict(self) -> None:
        ok = DeploymentResult.ok("https://github.com/u/r", full_name="u/r", commit_sha="abc")
        assert ok.to_dict() == {
            "success": True,
            "location": "https://github.com/u/r",
            "full_name": "u/r",
            "commit_sha": "abc",
            "error_kind": None,
            "error_message": None,
        }

        failed = DeploymentResult.fail(ErrorKind.NAME_CONFLICT, "taken")
        assert failed.to_dict()["error_kind"] == "name_conflict"
        assert failed.success is False

    def test_transport_error_str_includes_status(self) -> None:
        assert str(TransportError("Bad credentials", status_code=401)) == "Bad credentials (HTTP 401)"
        assert str(TransportError("timed out")) == "timed out"
