"""Skill bundles: layout, loading and name validation."""

from skillship.skills.bundle import (
    SkillAsset,
    SkillBundle,
    SkillReference,
    SkillScript,
    generate_readme,
    parse_frontmatter,
)
from skillship.skills.validation import validate_skill_description, validate_skill_name

__all__ = [
    "SkillAsset",
    "SkillBundle",
    "SkillReference",
    "SkillScript",
    "generate_readme",
    "parse_frontmatter",
    "validate_skill_description",
    "validate_skill_name",
]
