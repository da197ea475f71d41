"""
Configuration management for Skillship.

Provides YAML-based configuration with CLI overrides,
configuration hierarchy (CLI > YAML > Defaults), and validation.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

_ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}")


def expand_env_vars(value: str) -> str:
    """Expand ${VAR} patterns from the environment.

    Unknown variables are left untouched.
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        return os.environ.get(var_name, match.group(0))

    return _ENV_VAR_PATTERN.sub(replacer, value)


def get_skillship_home() -> Path:
    """Get skillship home directory, respecting SKILLSHIP_HOME env var."""
    home = os.environ.get("SKILLSHIP_HOME")
    if home:
        return Path(home)
    return Path.home() / ".skillship"


class GitHubSettings(BaseModel):
    """GitHub API connection configuration."""

    api_url: str = Field(
        default="https://api.github.com",
        description="GitHub REST API base URL",
    )
    token: str | None = Field(
        default="${GITHUB_TOKEN}",
        description="Access token used for deployments (supports ${VAR} expansion)",
    )
    request_timeout: float = Field(
        default=30.0,
        description="Timeout in seconds for every individual API request",
    )
    user_agent: str = Field(
        default="skillship",
        description="User-Agent header sent with API requests",
    )
    api_version: str = Field(
        default="2022-11-28",
        description="Value of the X-GitHub-Api-Version header",
    )

    @field_validator("request_timeout")
    @classmethod
    def validate_positive(cls, v: float) -> float:
        """Validate value is positive."""
        if v <= 0:
            raise ValueError("Value must be positive")
        return v

    def resolved_token(self) -> str | None:
        """Return the token with environment variables expanded.

        Returns None when the token is unset or still references an
        undefined variable.
        """
        if not self.token:
            return None
        token = expand_env_vars(self.token)
        if _ENV_VAR_PATTERN.search(token):
            return None
        return token or None


class DeploySettings(BaseModel):
    """Deployment behaviour configuration."""

    deploy_timeout: float | None = Field(
        default=120.0,
        description="Upper bound in seconds for one whole deployment attempt (None to disable)",
    )
    max_blob_concurrency: int = Field(
        default=8,
        ge=1,
        description="Maximum number of blob uploads in flight at once",
    )
    commit_signature: str = Field(
        default="Skillship",
        description="Origin named in generated commit messages",
    )
    readme_for_new_repos: bool = Field(
        default=True,
        description="Add a generated README.md when deploying to a new repository",
    )

    @field_validator("deploy_timeout")
    @classmethod
    def validate_deploy_timeout(cls, v: float | None) -> float | None:
        """Validate deploy timeout is positive when set."""
        if v is not None and v <= 0:
            raise ValueError("deploy_timeout must be positive")
        return v


class LoggingSettings(BaseModel):
    """Logging configuration."""

    level: Literal["debug", "info", "warning", "error"] = Field(
        default="info",
        description="Log level",
    )
    verbose_http: bool = Field(
        default=False,
        description="Keep httpx/httpcore request logging at the configured level",
    )


class SkillshipConfig(BaseModel):
    """Top-level Skillship configuration."""

    github: GitHubSettings = Field(default_factory=GitHubSettings)
    deploy: DeploySettings = Field(default_factory=DeploySettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


def load_yaml(config_file: str) -> dict[str, Any]:
    """
    Load YAML or JSON configuration file.

    A missing file yields an empty dictionary so defaults apply.

    Raises:
        ValueError: If YAML/JSON is invalid or file format is wrong
    """
    config_path = Path(config_file).expanduser()
    if not config_path.exists():
        return {}

    file_ext = config_path.suffix.lower()
    if file_ext not in (".yaml", ".yml", ".json"):
        raise ValueError(
            f"Config file must have .yaml, .yml, or .json extension, got: {file_ext}\n"
            f"File: {config_path}"
        )

    content = config_path.read_text(encoding="utf-8")
    try:
        if file_ext == ".json":
            data = json.loads(content) if content.strip() else {}
        else:
            data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in config file: {e}") from e
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in config file: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"Config file must contain a mapping at the top level: {config_path}")
    return data


def parse_override(expression: str) -> tuple[str, Any]:
    """Split a 'section.key=value' expression from the command line.

    The value is parsed as YAML, so numbers, booleans and 'null' keep
    their type.

    Raises:
        ValueError: If the expression has no '=' or an empty key
    """
    key, sep, raw = expression.partition("=")
    key = key.strip()
    if not sep or not key:
        raise ValueError(f"Expected KEY=VALUE, got: {expression!r}")
    try:
        value = yaml.safe_load(raw) if raw.strip() else ""
    except yaml.YAMLError:
        value = raw
    return key, value


def apply_cli_overrides(
    config_dict: dict[str, Any],
    cli_overrides: dict[str, Any] | None = None,
    skip_none: bool = True,
) -> dict[str, Any]:
    """
    Merge overrides into a configuration dictionary.

    Keys use dots for nesting (e.g. "github.request_timeout"). With
    skip_none, None values are ignored so unset CLI options leave the file
    value alone.
    """
    for key, value in (cli_overrides or {}).items():
        if value is None and skip_none:
            continue
        *sections, leaf = key.split(".")
        target = config_dict
        for section in sections:
            child = target.get(section)
            if not isinstance(child, dict):
                child = target[section] = {}
            target = child
        target[leaf] = value
    return config_dict


def _write_config(config_path: Path, data: dict[str, Any], header: str | None = None) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        if header:
            f.write(header)
        yaml.safe_dump(data, f, default_flow_style=False, sort_keys=False)
    # Owner read/write only, the file may hold a token
    config_path.chmod(0o600)


_DEFAULT_CONFIG_HEADER = """\
# Skillship configuration
#
# github.token accepts ${VAR} references; the default reads GITHUB_TOKEN.
# deploy.deploy_timeout bounds a whole deployment in seconds (null disables it).
# Any value can be overridden per run with: skillship --set section.key=value
"""


def generate_default_config(config_file: str) -> None:
    """Write a commented configuration file holding the model defaults."""
    default_config = SkillshipConfig().model_dump(mode="python", exclude_none=True)
    _write_config(Path(config_file).expanduser(), default_config, header=_DEFAULT_CONFIG_HEADER)


def default_config_file() -> str:
    return str(get_skillship_home() / "config.yaml")


def load_config(
    config_file: str | None = None,
    cli_overrides: dict[str, Any] | None = None,
    create_default: bool = False,
) -> SkillshipConfig:
    """
    Load configuration with hierarchy: CLI > YAML > Defaults.

    Args:
        config_file: Path to YAML config file (default: ~/.skillship/config.yaml)
        cli_overrides: Dotted-key overrides from the command line
        create_default: Create default config file if it doesn't exist

    Raises:
        ValueError: If configuration is invalid
    """
    config_path = Path(config_file or default_config_file()).expanduser()

    if create_default and not config_path.exists():
        generate_default_config(str(config_path))

    config_dict = apply_cli_overrides(load_yaml(str(config_path)), cli_overrides)

    try:
        return SkillshipConfig.model_validate(config_dict)
    except ValidationError as e:
        raise ValueError(
            f"Configuration validation failed: {e}\nPlease check your config file: {config_path}"
        ) from e


def save_config(config: SkillshipConfig, config_file: str | None = None) -> None:
    """
    Save configuration to YAML file with owner-only permissions.

    Raises:
        OSError: If file operations fail
    """
    config_path = Path(config_file or default_config_file()).expanduser()
    _write_config(config_path, config.model_dump(mode="python"))
