"""Skill bundles and their repository layout.

A skill is a folder holding a SKILL.md instruction document plus optional
scripts/, references/ and assets/ subfolders. This module turns a bundle
into the flat list of FileEntry values a deployment commits.
"""

from __future__ import annotations

import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from skillship.deploy.errors import InvalidInputError
from skillship.deploy.models import Deployment, FileEntry
from skillship.skills.validation import validate_skill_description, validate_skill_name

logger = logging.getLogger(__name__)

SKILL_FILE = "SKILL.md"
README_FILE = "README.md"
SCRIPTS_DIR = "scripts"
REFERENCES_DIR = "references"
ASSETS_DIR = "assets"

_FRONTMATTER_PATTERN = re.compile(r"^---\s*\n(.*?)\n---\s*\n", re.DOTALL)


def parse_frontmatter(content: str) -> tuple[dict[str, Any], str]:
    """Parse YAML frontmatter from SKILL.md content.

    Returns:
        Tuple of (frontmatter dict, body content)
    """
    match = _FRONTMATTER_PATTERN.match(content)
    if match:
        try:
            frontmatter = yaml.safe_load(match.group(1)) or {}
        except yaml.YAMLError as e:
            logger.warning(f"Failed to parse frontmatter: {e}")
            return {}, content
        if isinstance(frontmatter, dict):
            return frontmatter, content[match.end() :]
    return {}, content


def generate_readme(name: str, description: str, owner: str | None = None) -> str:
    """Generate README.md content for a skill repository."""
    owner_segment = owner or "YOUR_USERNAME"
    url = f"https://github.com/{owner_segment}/{name}"
    return f"""# {name}

{description}

## Installation

Add this skill to Claude Code by adding the following to your settings:

```json
{{
  "skills": [
    "{url}"
  ]
}}
```

Or use the CLI:

```bash
claude skills add {url}
```

## Usage

This skill will be automatically activated when relevant tasks are detected.

## License

MIT
"""


@dataclass
class SkillScript:
    name: str
    content: str
    language: str = ""

    @property
    def executable(self) -> bool:
        return self.content.startswith("#!")


@dataclass
class SkillReference:
    name: str
    content: str


@dataclass
class SkillAsset:
    """A static asset. Binary assets carry their bytes directly."""

    name: str
    content: bytes
    type: str = ""


@dataclass
class SkillBundle:
    """A generated skill ready to be deployed.

    Attributes:
        name: Skill name (lowercase, hyphenated)
        description: What the skill does and when to use it
        skill_md: Content of SKILL.md
        scripts: Executable helpers placed under scripts/
        references: Supporting documents placed under references/
        assets: Static files placed under assets/
    """

    name: str
    description: str
    skill_md: str
    scripts: list[SkillScript] = field(default_factory=list)
    references: list[SkillReference] = field(default_factory=list)
    assets: list[SkillAsset] = field(default_factory=list)

    def validate(self) -> None:
        """Raise InvalidInputError if the name or description is unusable."""
        error = validate_skill_name(self.name) or validate_skill_description(self.description)
        if error:
            raise InvalidInputError(error)

    def to_file_entries(
        self,
        include_readme: bool = False,
        owner: str | None = None,
        repo_name: str | None = None,
    ) -> list[FileEntry]:
        """Lay the bundle out as repository-relative files.

        Args:
            include_readme: Add a generated README.md (used for new repositories)
            owner: Repository owner mentioned in the README install snippet
            repo_name: Repository the README points at (defaults to the skill name)
        """
        entries = [FileEntry(path=SKILL_FILE, content=self.skill_md)]
        if include_readme:
            readme = generate_readme(repo_name or self.name, self.description, owner)
            entries.append(FileEntry(path=README_FILE, content=readme))
        for script in self.scripts:
            entries.append(
                FileEntry(
                    path=f"{SCRIPTS_DIR}/{script.name}",
                    content=script.content,
                    executable=script.executable,
                )
            )
        for reference in self.references:
            entries.append(FileEntry(path=f"{REFERENCES_DIR}/{reference.name}", content=reference.content))
        for asset in self.assets:
            entries.append(FileEntry(path=f"{ASSETS_DIR}/{asset.name}", content=asset.content))
        return entries

    def to_deployment(
        self,
        include_readme: bool = False,
        owner: str | None = None,
        repo_name: str | None = None,
    ) -> Deployment:
        """Build the Deployment handed to the orchestrator."""
        self.validate()
        return Deployment(
            name=self.name,
            files=self.to_file_entries(include_readme=include_readme, owner=owner, repo_name=repo_name),
            description=self.description,
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SkillBundle:
        """Load the JSON shape produced by skill generation.

        Expected keys: name, description, files.skillMd and optional
        files.scripts / files.references / files.assets lists. Assets with
        "encoding": "base64" are decoded to bytes.
        """
        files = data.get("files") or {}
        if not isinstance(files, dict):
            raise InvalidInputError("Skill bundle files must be an object")
        skill_md = files.get("skillMd")
        if not skill_md or not isinstance(skill_md, str):
            raise InvalidInputError("Skill bundle is missing files.skillMd")

        frontmatter, _ = parse_frontmatter(skill_md)
        name = data.get("name") or frontmatter.get("name") or ""
        description = data.get("description") or frontmatter.get("description") or ""

        assets = []
        for item in _file_items(files, "assets"):
            content: bytes
            if item.get("encoding") == "base64":
                try:
                    content = base64.b64decode(item["content"], validate=True)
                except (binascii.Error, ValueError) as e:
                    raise InvalidInputError(f"Asset {item.get('name')} is not valid base64") from e
            else:
                content = str(item.get("content", "")).encode("utf-8")
            assets.append(SkillAsset(name=item["name"], content=content, type=item.get("type", "")))

        return cls(
            name=str(name),
            description=str(description),
            skill_md=skill_md,
            scripts=[
                SkillScript(name=s["name"], content=s.get("content", ""), language=s.get("language", ""))
                for s in _file_items(files, "scripts")
            ],
            references=[
                SkillReference(name=r["name"], content=r.get("content", ""))
                for r in _file_items(files, "references")
            ],
            assets=assets,
        )

    @classmethod
    def from_directory(cls, path: Path) -> SkillBundle:
        """Load a skill folder containing SKILL.md and optional subfolders.

        Name and description come from the SKILL.md frontmatter, falling back
        to the folder name.
        """
        skill_file = path / SKILL_FILE
        if not skill_file.is_file():
            raise InvalidInputError(f"No {SKILL_FILE} found in {path}")

        skill_md = _read_text(skill_file)
        frontmatter, _ = parse_frontmatter(skill_md)

        def files_in(subdir: str) -> list[Path]:
            folder = path / subdir
            if not folder.is_dir():
                return []
            return sorted(p for p in folder.rglob("*") if p.is_file())

        scripts_dir = path / SCRIPTS_DIR
        references_dir = path / REFERENCES_DIR
        assets_dir = path / ASSETS_DIR

        return cls(
            name=str(frontmatter.get("name") or path.name),
            description=str(frontmatter.get("description") or ""),
            skill_md=skill_md,
            scripts=[
                SkillScript(
                    name=p.relative_to(scripts_dir).as_posix(),
                    content=_read_text(p),
                    language=p.suffix.lstrip("."),
                )
                for p in files_in(SCRIPTS_DIR)
            ],
            references=[
                SkillReference(
                    name=p.relative_to(references_dir).as_posix(),
                    content=_read_text(p),
                )
                for p in files_in(REFERENCES_DIR)
            ],
            assets=[
                SkillAsset(
                    name=p.relative_to(assets_dir).as_posix(),
                    content=p.read_bytes(),
                    type=p.suffix.lstrip("."),
                )
                for p in files_in(ASSETS_DIR)
            ],
        )


def _file_items(files: dict[str, Any], key: str) -> list[dict[str, Any]]:
    items = files.get(key) or []
    if not isinstance(items, list) or not all(isinstance(item, dict) and "name" in item for item in items):
        raise InvalidInputError(f"Skill bundle files.{key} must be a list of objects with a name")
    return items


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise InvalidInputError(f"{path} is not valid UTF-8 text; binary files belong under {ASSETS_DIR}/") from e
