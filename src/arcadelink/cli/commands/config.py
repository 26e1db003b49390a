"""
Configuration commands.

Commands:
    - config show [--field FIELD]   # Display configuration
    - config path                   # Print the config file location
    - config validate               # Check the config file
    - config reset [--yes]          # Write the defaults back
"""

import json

import click

from arcadelink.exceptions import ArcadeLinkError
from arcadelink.models import DEFAULT_CONFIG_PATH, AppConfig

from .common import fail, load_config


def _config_path(ctx):
    return (ctx.obj or {}).get("config_path") or DEFAULT_CONFIG_PATH


@click.group(name="config")
def config():
    """Show and manage ArcadeLink settings."""
    pass


@config.command(name="show")
@click.option("--field", "-f", default=None, help="Show only this field")
@click.pass_context
def show(ctx, field: str | None):
    """Display the current configuration."""
    data = load_config(ctx).model_dump(mode="json")
    if field:
        if field not in data:
            click.echo(f"Unknown field: {field}", err=True)
            click.echo(f"Available fields: {', '.join(data)}", err=True)
            ctx.exit(1)
        click.echo(json.dumps(data[field], indent=2) if isinstance(data[field], (dict, list)) else data[field])
        return
    click.echo(json.dumps(data, indent=2))


@config.command(name="path")
@click.pass_context
def path(ctx):
    """Print the config file location."""
    config_path = _config_path(ctx)
    suffix = "" if config_path.exists() else " (not created yet, defaults in use)"
    click.echo(f"{config_path}{suffix}")


@config.command(name="validate")
@click.pass_context
def validate(ctx):
    """Check that the config file parses and validates."""
    config_path = _config_path(ctx)
    if not config_path.exists():
        click.echo(f"[OK] {config_path} does not exist; defaults are valid")
        return
    try:
        AppConfig.load_or_default(config_path)
    except ArcadeLinkError as e:
        click.echo(f"[FAIL] {config_path}")
        fail(e, ctx)
    click.echo(f"[OK] {config_path}")


@config.command(name="reset")
@click.option("--yes", is_flag=True, help="Don't ask for confirmation")
@click.pass_context
def reset(ctx, yes: bool):
    """Reset the configuration to defaults."""
    config_path = _config_path(ctx)
    if not yes and not click.confirm(f"Overwrite {config_path} with defaults?"):
        click.echo("Cancelled.")
        return
    AppConfig().save(config_path)
    click.echo(f"Configuration reset: {config_path}")
