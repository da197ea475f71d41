"""
Configuration package for Skillship.

Pydantic config models and the YAML loader live in app.py.
"""

from skillship.config.app import (
    DeploySettings,
    GitHubSettings,
    LoggingSettings,
    SkillshipConfig,
    expand_env_vars,
    get_skillship_home,
    load_config,
    parse_override,
    save_config,
)

__all__ = [
    "DeploySettings",
    "GitHubSettings",
    "LoggingSettings",
    "SkillshipConfig",
    "expand_env_vars",
    "get_skillship_home",
    "load_config",
    "parse_override",
    "save_config",
]
