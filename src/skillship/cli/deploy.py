"""
Deploy commands: publish a skill bundle to GitHub.
"""

import asyncio
import logging
from dataclasses import replace

import click

from skillship.cli.utils import create_client, echo_result, load_bundle, resolve_token
from skillship.config.app import SkillshipConfig
from skillship.deploy.errors import DeployError
from skillship.deploy.models import (
    DeploymentResult,
    DeploymentTarget,
    ExistingRepository,
    NewRepository,
)
from skillship.deploy.orchestrator import DeploymentOrchestrator
from skillship.deploy.paths import validate_entries
from skillship.skills.bundle import SkillBundle

logger = logging.getLogger(__name__)


async def run_deployment(
    config: SkillshipConfig,
    token: str,
    bundle: SkillBundle,
    target: DeploymentTarget,
) -> DeploymentResult:
    """Deploy a bundle with a fresh GitHub client.

    The bundle and its file layout are validated before the client is
    opened, so invalid input never reaches GitHub.
    """
    include_readme = isinstance(target, NewRepository) and config.deploy.readme_for_new_repos
    repo_name = target.name if isinstance(target, NewRepository) else None
    try:
        bundle.validate()
        validate_entries(bundle.to_file_entries(include_readme=include_readme, repo_name=repo_name))
    except DeployError as e:
        return DeploymentResult.fail(e.kind, str(e))

    async with create_client(config, token) as client:
        if include_readme and isinstance(target, NewRepository):
            try:
                owner = await client.get_authenticated_user()
            except DeployError as e:
                return DeploymentResult.fail(e.kind, str(e))
            # Resolved once; the orchestrator reuses it for the new repository
            target = replace(target, owner=owner)
            deployment = bundle.to_deployment(include_readme=True, owner=owner, repo_name=target.name)
        else:
            deployment = bundle.to_deployment()

        orchestrator = DeploymentOrchestrator.from_config(client, config)
        return await orchestrator.deploy(deployment, target)


@click.group()
def deploy() -> None:
    """Deploy skills to GitHub."""
    pass


@deploy.command("new")
@click.argument("bundle")
@click.option("--name", "-n", "repo_name", help="Repository name (default: skill name)")
@click.option("--private/--public", default=False, help="Repository visibility")
@click.option("--description", "-d", help="Repository description")
@click.option("--token", envvar="SKILLSHIP_TOKEN", help="GitHub access token")
@click.option("--json", "json_format", is_flag=True, help="Output as JSON")
@click.pass_context
def deploy_new(
    ctx: click.Context,
    bundle: str,
    repo_name: str | None,
    private: bool,
    description: str | None,
    token: str | None,
    json_format: bool,
) -> None:
    """Deploy a skill to a new repository.

    BUNDLE is a skill JSON file or a skill directory.

    Examples:

        skillship deploy new ./my-skill --private

        skillship deploy new skill.json --name demo-skill
    """
    config: SkillshipConfig = ctx.obj["config"]
    skill = load_bundle(bundle)
    target = NewRepository(
        name=repo_name or skill.name,
        visibility="private" if private else "public",
        description=description or "",
    )
    result = asyncio.run(run_deployment(config, resolve_token(config, token), skill, target))
    echo_result(result, json_format)


@deploy.command("existing")
@click.argument("bundle")
@click.option("--repo", "-r", "full_name", required=True, help="Target repository (owner/repo)")
@click.option("--path", "-p", "base_path", help="Directory inside the repository to place the skill under")
@click.option("--token", envvar="SKILLSHIP_TOKEN", help="GitHub access token")
@click.option("--json", "json_format", is_flag=True, help="Output as JSON")
@click.pass_context
def deploy_existing(
    ctx: click.Context,
    bundle: str,
    full_name: str,
    base_path: str | None,
    token: str | None,
    json_format: bool,
) -> None:
    """Deploy a skill into an existing repository.

    Existing files outside the skill folder are left untouched.

    Examples:

        skillship deploy existing ./my-skill --repo user/hub --path skills
    """
    config: SkillshipConfig = ctx.obj["config"]
    skill = load_bundle(bundle)
    target = ExistingRepository(full_name=full_name, base_path=base_path)
    result = asyncio.run(run_deployment(config, resolve_token(config, token), skill, target))
    echo_result(result, json_format)
