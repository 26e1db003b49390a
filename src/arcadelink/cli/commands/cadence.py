"""Bike cadence sensor commands."""

import sys
import time

import click

from arcadelink.core import ArcadeController

from .common import connected_controller, load_config


@click.group(name="cadence")
@click.option("--wait", type=float, default=5.0, show_default=True, help="Seconds to wait for the sensor")
@click.pass_context
def cadence_group(ctx, wait: float):
    """Bike cadence sensor commands."""
    ctx.obj["wait"] = wait


def _with_sensor(ctx, action, what: str) -> None:
    with connected_controller(ctx) as controller:
        deadline = time.monotonic() + ctx.obj["wait"]
        while not controller.is_cadence_sensor_connected() and time.monotonic() < deadline:
            time.sleep(0.1)
        ok = action(controller)
    if ok:
        click.echo(f"{what}: done")
    else:
        click.echo(f"{what}: failed (no cadence sensor connected)", err=True)
        sys.exit(1)


@cadence_group.command(name="reset")
@click.pass_context
def reset(ctx):
    """Reset the revolution counter."""
    _with_sensor(ctx, lambda c: c.reset_cadence_counter(), "Reset counter")


@cadence_group.command(name="game-mode")
@click.argument("state", type=click.Choice(["on", "off"], case_sensitive=False))
@click.pass_context
def game_mode(ctx, state: str):
    """Switch the sensor's game mode on or off."""
    _with_sensor(ctx, lambda c: c.set_cadence_game_mode(state.lower() == "on"), f"Game mode {state}")


@cadence_group.command(name="test")
@click.pass_context
def test(ctx):
    """Ask the sensor to run its self test."""
    _with_sensor(ctx, lambda c: c.test_cadence_sensor(), "Sensor test")


@cadence_group.command(name="simulate")
@click.argument("revolution_count", type=click.IntRange(min=0))
@click.argument("rpm", type=click.IntRange(min=0))
@click.pass_context
def simulate(ctx, revolution_count: int, rpm: int):
    """Feed a synthetic sample through the controller (no hardware needed)."""
    controller = ArcadeController(load_config(ctx))
    reading = controller.simulate_cadence_sample(revolution_count, rpm)
    if reading is None:
        click.echo("Sample rejected", err=True)
        sys.exit(1)
    click.echo(f"cadence-sample: count={reading.revolution_count} rpm={reading.rpm}")
