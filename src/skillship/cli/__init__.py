"""
Skillship CLI entry point.
"""

from pathlib import Path

import click
import yaml

from skillship.config.app import (
    SkillshipConfig,
    apply_cli_overrides,
    default_config_file,
    generate_default_config,
    load_config,
    load_yaml,
    parse_override,
    save_config,
)

from .deploy import deploy
from .repos import repos, whoami
from .utils import setup_logging


@click.group()
@click.option(
    "--config",
    type=click.Path(exists=True),
    help="Path to custom configuration file",
)
@click.option(
    "--set",
    "overrides",
    multiple=True,
    metavar="KEY=VALUE",
    help="Override a config value for this run, e.g. github.request_timeout=10 (repeatable)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config: str | None, overrides: tuple[str, ...], verbose: bool) -> None:
    """Skillship - publish agent skills to GitHub."""
    ctx.ensure_object(dict)
    try:
        cli_overrides = dict(parse_override(item) for item in overrides)
        loaded = load_config(config, cli_overrides=cli_overrides)
    except ValueError as e:
        raise click.ClickException(str(e)) from e
    ctx.obj["config"] = loaded
    ctx.obj["config_file"] = config
    setup_logging(
        verbose=verbose,
        level=loaded.logging.level,
        verbose_http=loaded.logging.verbose_http,
    )


@cli.group("config")
def config_group() -> None:
    """Manage the configuration file."""
    pass


@config_group.command("init")
@click.option("--force", is_flag=True, help="Overwrite an existing file")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Write a default configuration file."""
    config_file = ctx.obj.get("config_file") or default_config_file()
    path = Path(config_file).expanduser()
    if path.exists() and not force:
        click.echo(f"Config already exists: {path} (use --force to overwrite)", err=True)
        raise SystemExit(1)
    generate_default_config(str(path))
    click.echo(f"Wrote default config to {path}")


@config_group.command("set")
@click.argument("key")
@click.argument("value")
@click.pass_context
def config_set(ctx: click.Context, key: str, value: str) -> None:
    """Persist one value to the configuration file.

    Examples:

        skillship config set deploy.max_blob_concurrency 4

        skillship config set deploy.deploy_timeout null
    """
    config_file = ctx.obj.get("config_file") or default_config_file()
    try:
        _, parsed = parse_override(f"{key}={value}")
        data = apply_cli_overrides(load_yaml(config_file), {key: parsed}, skip_none=False)
        updated = SkillshipConfig.model_validate(data)
    except ValueError as e:
        raise click.ClickException(f"Cannot set {key}: {e}") from e
    save_config(updated, config_file)
    click.echo(f"Set {key} in {Path(config_file).expanduser()}")


@config_group.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration (token redacted)."""
    data = ctx.obj["config"].model_dump(mode="python")
    if data["github"].get("token") and not data["github"]["token"].startswith("${"):
        data["github"]["token"] = "***"
    click.echo(yaml.safe_dump(data, default_flow_style=False, sort_keys=False))


cli.add_command(deploy)
cli.add_command(repos)
cli.add_command(whoami)
