"""Skill name and description checks applied before deployment."""

import re

SKILL_NAME_PATTERN = re.compile(r"^[a-z0-9]+(-[a-z0-9]+)*$")
MAX_NAME_LENGTH = 64
MAX_DESCRIPTION_LENGTH = 1024


def validate_skill_name(name: str) -> str | None:
    """Validate a skill name against naming conventions.

    Returns None if valid, or an error message string if invalid.
    """
    if not name:
        return "Skill name is required"
    if len(name) > MAX_NAME_LENGTH:
        return f"Skill name must be {MAX_NAME_LENGTH} characters or less (current: {len(name)})"
    if not SKILL_NAME_PATTERN.match(name):
        return (
            f"Invalid skill name '{name}'. "
            "Name must be lowercase letters, digits, and hyphens only, "
            "and cannot have leading/trailing or consecutive hyphens."
        )
    return None


def validate_skill_description(description: str) -> str | None:
    """Validate a skill description length.

    Returns None if valid, or an error message string if invalid.
    """
    if len(description) > MAX_DESCRIPTION_LENGTH:
        return (
            f"Skill description must be {MAX_DESCRIPTION_LENGTH} characters or less "
            f"(current: {len(description)})"
        )
    return None
