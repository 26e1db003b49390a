"""LED commands."""

import sys
import time

import click

from arcadelink.models import ROLE_IDS

from .common import connected_controller

ROLE = click.IntRange(1, len(ROLE_IDS))
STATE = click.Choice(["on", "off"], case_sensitive=False)

# Seconds to wait for PONG replies
PONG_WAIT = 0.5


@click.group(name="led")
@click.option("--wait", type=float, default=5.0, show_default=True, help="Seconds to wait for devices")
@click.pass_context
def led_group(ctx, wait: float):
    """Switch button LEDs."""
    ctx.obj["wait"] = wait


def _report(ok: bool, what: str) -> None:
    if ok:
        click.echo(f"{what}: done")
    else:
        click.echo(f"{what}: failed (device not connected?)", err=True)
        sys.exit(1)


@led_group.command(name="set")
@click.argument("role_id", type=ROLE)
@click.argument("state", type=STATE)
@click.pass_context
def set_led(ctx, role_id: int, state: str):
    """Switch one button's LED on or off."""
    with connected_controller(ctx, [role_id], ctx.obj["wait"]) as controller:
        ok = controller.set_led(role_id, state.lower() == "on")
    _report(ok, f"LED {role_id} {state}")


@led_group.command(name="all")
@click.argument("state", type=STATE)
@click.pass_context
def all_leds(ctx, state: str):
    """Switch every button's LED on or off."""
    with connected_controller(ctx, ROLE_IDS, ctx.obj["wait"]) as controller:
        ok = controller.set_all_leds(state.lower() == "on")
    _report(ok, f"All LEDs {state}")


@led_group.command(name="flash")
@click.argument("role_id", type=ROLE)
@click.option("--times", type=int, default=3, show_default=True)
@click.option("--duration", type=int, default=500, show_default=True, help="Milliseconds per phase")
@click.pass_context
def flash(ctx, role_id: int, times: int, duration: int):
    """Flash one button's LED."""
    with connected_controller(ctx, [role_id], ctx.obj["wait"]) as controller:
        connected = controller.registry.port_for_button(role_id) is not None
        controller.flash_led(role_id, times, duration)
    _report(connected, f"Flash LED {role_id}")


@led_group.command(name="ping")
@click.argument("role_id", type=ROLE, required=False)
@click.pass_context
def ping(ctx, role_id: int | None):
    """Ping one button (or all of them) and wait briefly for PONG replies."""
    roles = [role_id] if role_id else list(ROLE_IDS)
    with connected_controller(ctx, roles, ctx.obj["wait"]) as controller:
        ok = controller.ping(role_id) if role_id else controller.ping_all()
        time.sleep(PONG_WAIT)
        for device in controller.manager.devices():
            pong = "never" if device.last_pong is None else "received"
            click.echo(f"  {device.port}: {device.role} (pong {pong})")
    _report(ok, "Ping")
