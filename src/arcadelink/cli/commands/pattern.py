"""LED pattern commands."""

import click

from arcadelink.models import ROLE_IDS

from .common import connected_controller


@click.group(name="pattern")
@click.option("--wait", type=float, default=5.0, show_default=True, help="Seconds to wait for all four buttons")
@click.pass_context
def pattern_group(ctx, wait: float):
    """Play LED patterns across the four buttons."""
    ctx.obj["wait"] = wait


def _play(ctx, name: str, play):
    with connected_controller(ctx, ROLE_IDS, ctx.obj["wait"]) as controller:
        click.echo(f"Playing {name}...")
        result = play(controller)
    return result


@pattern_group.command(name="flash-all")
@click.option("--times", type=int, default=3, show_default=True)
@click.option("--duration", type=int, default=300, show_default=True, help="Milliseconds per phase")
@click.pass_context
def flash_all(ctx, times: int, duration: int):
    """Flash every LED together."""
    _play(ctx, "flash-all", lambda c: c.flash_all_leds(times, duration))


@pattern_group.command(name="chase")
@click.option("--rounds", type=int, default=2, show_default=True)
@click.option("--speed", type=int, default=200, show_default=True, help="Milliseconds per light")
@click.pass_context
def chase(ctx, rounds: int, speed: int):
    """Light buttons 1 to 4 in turn."""
    _play(ctx, "chase", lambda c: c.chase_leds(rounds, speed))


@pattern_group.command(name="random")
@click.option("--count", type=click.IntRange(1, 4), default=4, show_default=True)
@click.option("--on", "on_duration", type=int, default=500, show_default=True, help="Milliseconds lit")
@click.option("--off", "off_duration", type=int, default=100, show_default=True, help="Milliseconds between lights")
@click.option("--sequences", type=int, default=1, show_default=True)
@click.pass_context
def random_sequence(ctx, count: int, on_duration: int, off_duration: int, sequences: int):
    """Light the buttons in random orders."""
    played = _play(ctx, "random sequence", lambda c: c.random_led_sequence(count, on_duration, off_duration, sequences))
    for sequence in played:
        click.echo("  " + " ".join(str(role_id) for role_id in sequence))


@pattern_group.command(name="simon")
@click.option("--length", type=int, default=4, show_default=True)
@click.option("--speed", type=int, default=800, show_default=True, help="Milliseconds per light")
@click.pass_context
def simon(ctx, length: int, speed: int):
    """Play a Simon-says sequence and print it."""
    sequence = _play(ctx, "simon", lambda c: c.simon_says_pattern(length, speed))
    click.echo("Sequence: " + " ".join(str(role_id) for role_id in sequence))


@pattern_group.command(name="cascade")
@click.option("--waves", type=int, default=3, show_default=True)
@click.option("--speed", "wave_speed", type=int, default=200, show_default=True, help="Milliseconds per light")
@click.pass_context
def cascade(ctx, waves: int, wave_speed: int):
    """Sweep light across the buttons in random directions."""
    _play(ctx, "cascade", lambda c: c.random_cascade(waves, wave_speed))


@pattern_group.command(name="rhythmic")
@click.option("--beats", type=int, default=8, show_default=True)
@click.option("--tempo", type=int, default=600, show_default=True, help="Milliseconds per beat")
@click.pass_context
def rhythmic(ctx, beats: int, tempo: int):
    """Light random buttons on a beat."""
    _play(ctx, "rhythmic pattern", lambda c: c.rhythmic_random_pattern(beats, tempo))


@pattern_group.command(name="game")
@click.argument("kind", type=click.Choice(["start", "over", "win"], case_sensitive=False))
@click.pass_context
def game(ctx, kind: str):
    """Play the game start, game over or game win pattern."""
    patterns = {
        "start": lambda c: c.game_start_pattern(),
        "over": lambda c: c.game_over_pattern(),
        "win": lambda c: c.game_win_pattern(),
    }
    _play(ctx, f"game {kind}", patterns[kind.lower()])


@pattern_group.command(name="speed")
@click.argument("rpm", type=click.IntRange(min=0))
@click.pass_context
def speed(ctx, rpm: int):
    """Flash all LEDs faster the higher RPM is."""
    _play(ctx, f"speed feedback for {rpm} rpm", lambda c: c.speed_feedback_pattern(rpm))


@pattern_group.command(name="random-flash")
@click.option("--sequences", type=int, default=3, show_default=True, help="Number of flashes")
@click.option("--duration", "flash_duration", type=int, default=500, show_default=True, help="Milliseconds per phase")
@click.pass_context
def random_flash(ctx, sequences: int, flash_duration: int):
    """Flash one random button at a time."""
    picks = _play(ctx, "random flash", lambda c: c.random_flash_sequence(sequences, flash_duration))
    click.echo("Flashed: " + " ".join(str(role_id) for role_id in picks))


@pattern_group.command(name="random-game")
@click.option("--rounds", type=int, default=5, show_default=True)
@click.option("--speed", type=int, default=600, show_default=True, help="Milliseconds each group stays lit")
@click.pass_context
def random_game(ctx, rounds: int, speed: int):
    """Light a random group of buttons each round."""
    groups = _play(ctx, "random LED game", lambda c: c.random_led_game(rounds, speed))
    for group in groups:
        click.echo("  " + "+".join(str(role_id) for role_id in group))


@pattern_group.command(name="bike")
@click.argument("kind", type=click.Choice(["start", "milestone", "victory"], case_sensitive=False))
@click.option("--milestone", type=click.IntRange(min=0), default=1, show_default=True, help="Milestone number")
@click.pass_context
def bike(ctx, kind: str, milestone: int):
    """Play the bike game start, milestone or victory cue."""
    patterns = {
        "start": lambda c: c.bike_start_pattern(),
        "milestone": lambda c: c.bike_milestone_pattern(milestone),
        "victory": lambda c: c.bike_victory_pattern(),
    }
    _play(ctx, f"bike {kind}", patterns[kind.lower()])
