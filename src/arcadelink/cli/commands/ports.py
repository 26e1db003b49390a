"""Serial port discovery command."""

import click

from arcadelink.devices import PortScanner

from .common import load_config


@click.command(name="ports")
@click.option("--all", "show_all", is_flag=True, help="List every serial port, not just micro:bit candidates")
@click.pass_context
def ports(ctx, show_all: bool):
    """List serial ports that look like micro:bits."""
    scanner = PortScanner(load_config(ctx).scanner)
    found = scanner.list_all() if show_all else scanner.scan()

    if not found:
        click.echo("No micro:bit ports found." if not show_all else "No serial ports found.")
        return

    click.echo("Serial ports:\n" if show_all else "Candidate micro:bit ports:\n")
    for candidate in found:
        ids = f"{candidate.vendor_id}:{candidate.product_id}" if candidate.vendor_id else "-"
        marker = "*" if show_all and scanner.is_candidate(candidate) else " "
        click.echo(f" {marker} {candidate.port:<24} {ids:<10} {candidate.manufacturer or ''} {candidate.description}")
    if show_all:
        click.echo("\n  * = micro:bit candidate")
