"""
Shared utilities for CLI commands.
"""

import json
import logging
import os
from pathlib import Path

import click

from skillship.config.app import SkillshipConfig
from skillship.deploy.errors import InvalidInputError
from skillship.deploy.models import DeploymentResult
from skillship.github.client import GitHubClient
from skillship.skills.bundle import SkillBundle

logger = logging.getLogger(__name__)

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def setup_logging(verbose: bool = False, level: str = "info", verbose_http: bool = False) -> None:
    """
    Configure logging for CLI.

    Args:
        verbose: If True, enable DEBUG level logging regardless of level
        level: Configured log level name
        verbose_http: Keep httpx/httpcore loggers at the same level
    """
    log_level = logging.DEBUG if verbose else _LEVELS.get(level, logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    # Silence noisy third-party loggers
    if not verbose_http:
        logging.getLogger("httpx").setLevel(logging.WARNING)
        logging.getLogger("httpcore").setLevel(logging.WARNING)


def resolve_token(config: SkillshipConfig, token: str | None = None) -> str:
    """Pick the access token: --token, then config, then GITHUB_TOKEN.

    Raises:
        click.UsageError: If no token is available
    """
    resolved = token or config.github.resolved_token() or os.environ.get("GITHUB_TOKEN")
    if not resolved:
        raise click.UsageError(
            "No GitHub token available. Pass --token, set github.token in the config, "
            "or export GITHUB_TOKEN."
        )
    return resolved


def create_client(config: SkillshipConfig, token: str) -> GitHubClient:
    """Create a GitHub client from configuration."""
    return GitHubClient(
        token=token,
        api_url=config.github.api_url,
        timeout=config.github.request_timeout,
        user_agent=config.github.user_agent,
        api_version=config.github.api_version,
    )


def load_bundle(source: str) -> SkillBundle:
    """Load a skill bundle from a JSON file or a skill directory.

    Raises:
        click.BadParameter: If the source cannot be read or is malformed
    """
    path = Path(source).expanduser()
    try:
        if path.is_dir():
            return SkillBundle.from_directory(path)
        with open(path, encoding="utf-8") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise click.BadParameter(f"{source} must contain a JSON object", param_hint="BUNDLE")
        return SkillBundle.from_dict(data)
    except json.JSONDecodeError as e:
        raise click.BadParameter(f"Invalid JSON in {source}: {e}", param_hint="BUNDLE") from e
    except UnicodeDecodeError as e:
        raise click.BadParameter(f"{source} is not valid UTF-8: {e}", param_hint="BUNDLE") from e
    except (InvalidInputError, KeyError, AttributeError, TypeError) as e:
        raise click.BadParameter(f"Invalid skill bundle {source}: {e}", param_hint="BUNDLE") from e
    except OSError as e:
        raise click.BadParameter(f"Cannot read {source}: {e}", param_hint="BUNDLE") from e


def echo_result(result: DeploymentResult, json_format: bool = False) -> None:
    """Print a deployment result and exit non-zero on failure."""
    if json_format:
        click.echo(json.dumps(result.to_dict(), indent=2))
    elif result.success:
        click.echo(f"Deployed to {result.location}")
        if result.commit_sha:
            click.echo(f"  commit: {result.commit_sha}")
    else:
        kind = result.error_kind.value if result.error_kind else "error"
        click.echo(f"Deployment failed [{kind}]: {result.error_message}", err=True)

    if not result.success:
        raise SystemExit(1)
