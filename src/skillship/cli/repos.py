"""
Account commands: list repositories and show the authenticated user.
"""

import asyncio
import json

import click

from skillship.cli.utils import create_client, resolve_token
from skillship.config.app import SkillshipConfig
from skillship.deploy.errors import DeployError
from skillship.github.store import RepositoryInfo


@click.command()
@click.option("--limit", "-n", default=30, help="Max results")
@click.option("--token", envvar="SKILLSHIP_TOKEN", help="GitHub access token")
@click.option("--json", "json_format", is_flag=True, help="Output as JSON")
@click.pass_context
def repos(ctx: click.Context, limit: int, token: str | None, json_format: bool) -> None:
    """List your repositories, most recently updated first."""
    config: SkillshipConfig = ctx.obj["config"]
    access_token = resolve_token(config, token)

    async def _run() -> list[RepositoryInfo]:
        async with create_client(config, access_token) as client:
            return await client.list_repositories(limit=limit)

    try:
        repo_list = asyncio.run(_run())
    except DeployError as e:
        click.echo(f"Failed to list repositories: {e}", err=True)
        raise SystemExit(1) from e

    if json_format:
        click.echo(json.dumps([r.to_dict() for r in repo_list], indent=2))
        return

    if not repo_list:
        click.echo("No repositories found.")
        return

    for repo in repo_list:
        click.echo(f"{repo.full_name} ({repo.default_branch})")


@click.command()
@click.option("--token", envvar="SKILLSHIP_TOKEN", help="GitHub access token")
@click.pass_context
def whoami(ctx: click.Context, token: str | None) -> None:
    """Show the GitHub login the token belongs to."""
    config: SkillshipConfig = ctx.obj["config"]
    access_token = resolve_token(config, token)

    async def _run() -> str:
        async with create_client(config, access_token) as client:
            return await client.get_authenticated_user()

    try:
        click.echo(asyncio.run(_run()))
    except DeployError as e:
        click.echo(f"Failed to resolve user: {e}", err=True)
        raise SystemExit(1) from e
