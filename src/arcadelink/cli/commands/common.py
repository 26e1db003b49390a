"""Helpers shared by the CLI commands."""

import contextlib
import logging
import sys
from collections.abc import Iterable, Iterator

import click

from arcadelink.core import ArcadeController
from arcadelink.exceptions import ArcadeLinkError, format_error_for_display
from arcadelink.models import AppConfig

logger = logging.getLogger(__name__)


def fail(error: Exception, ctx: click.Context | None = None) -> None:
    """Show a clean error message (no traceback) and exit with status 1."""
    user_message, recovery_hint = format_error_for_display(error)
    click.echo(f"ERROR: {user_message}", err=True)
    if recovery_hint:
        click.echo(f"\n{recovery_hint}", err=True)
    log_path = (ctx.obj or {}).get("log_path") if ctx else None
    if log_path:
        click.echo(f"\nFor details, check the log file: {log_path}", err=True)
    sys.exit(1)


def load_config(ctx: click.Context) -> AppConfig:
    """Load the config named by --config (or the default file)."""
    path = (ctx.obj or {}).get("config_path")
    try:
        return AppConfig.load_or_default(path)
    except ArcadeLinkError as e:
        logger.error(f"Failed to load config: {e}")
        fail(e, ctx)


@contextlib.contextmanager
def connected_controller(
    ctx: click.Context, roles: Iterable[int] = (), wait: float = 5.0
) -> Iterator[ArcadeController]:
    """
    Start a controller, wait for the listed button roles, and stop it afterwards.

    Missing roles are reported but don't abort: commands to them simply fail.
    """
    controller = ArcadeController(load_config(ctx))
    controller.start(wait=True)
    try:
        roles = list(roles)
        if roles and not controller.wait_for_roles(roles, timeout=wait):
            status = controller.get_connection_status()
            click.echo(
                f"Warning: not every button connected within {wait}s "
                f"({len(status['mappings'])} role(s) assigned)",
                err=True,
            )
        yield controller
    finally:
        controller.stop()
