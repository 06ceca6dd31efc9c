#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
Command-line tool to read, program and back up the 500 memory channels of a
Uniden BC125AT scanner over its serial programming interface.
"""

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Optional

import typer
from rich import print
from rich.logging import RichHandler
from rich.progress import Progress
from rich.table import Table
from typing_extensions import Annotated

from bc125at_channels import filter_channels, format_frequency_mhz
from bc125at_csv import load_csv, save_csv
from bc125at_errors import ScannerError
from bc125at_radio_comms import BC125AT_Scanner
from bc125at_sync import read_all, write_all, write_changed
from bc125at_tones import render_tone

APP_TITLE = "BC125AT Memory Manager"
APP_VERSION = "1.0.0"
DEFAULT_TIMEOUT = 2.0
DEFAULT_CSV_FILENAME = "bc125at_channels.csv"

app = typer.Typer(help=f"{APP_TITLE} {APP_VERSION}")

PortArg = Annotated[str, typer.Argument(
    help="Serial port or pyserial URL, e.g. /dev/ttyACM0, COM3, socket://host:4000"
)]


@app.callback()
def main(
    ctx: typer.Context,
    verbose: Annotated[bool, typer.Option("--verbose", "-v",
                                          help="Log serial traffic.")] = False,
    timeout: Annotated[float, typer.Option(
        help="Seconds to wait for each response (0 waits forever)."
    )] = DEFAULT_TIMEOUT,
) -> None:
    """BC125AT memory channel manager."""
    ctx.obj = ctx.obj or {}
    ctx.obj["timeout"] = timeout if timeout > 0 else None
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(show_path=False)],
    )


@contextmanager
def _connected(ctx, port, program_mode=True):
    """Connect (optionally entering program mode) and always disconnect."""
    scanner = BC125AT_Scanner(port, timeout=ctx.obj["timeout"])
    if not scanner.connect():
        print(f"[red]Could not connect:[/red] {scanner.last_error}")
        raise typer.Exit(code=1)
    try:
        if program_mode and not scanner.enter_program_mode():
            print(f"[red]Scanner did not enter program mode:[/red] "
                  f"{scanner.last_error}")
            raise typer.Exit(code=1)
        yield scanner
    finally:
        scanner.disconnect()


@contextmanager
def _progress_bar(description):
    with Progress() as progress:
        task = progress.add_task(description, total=None)

        def update(current, total):
            progress.update(task, completed=current, total=total)

        yield update


@app.command()
def info(ctx: typer.Context, port: PortArg) -> None:
    """Show scanner model and firmware version."""
    with _connected(ctx, port, program_mode=False) as scanner:
        try:
            model = scanner.get_model_info()
            firmware = scanner.get_firmware_version()
        except ScannerError as e:
            print(f"[red]Failed to get scanner info:[/red] {e}")
            raise typer.Exit(code=1)
    print(f"Model: {model or '?'}")
    print(f"Firmware: {firmware or '?'}")


@app.command()
def read(
    ctx: typer.Context,
    port: PortArg,
    output: Annotated[Path, typer.Argument(help="CSV file to write.")]
        = Path(DEFAULT_CSV_FILENAME),
) -> None:
    """Read all channels from the scanner and save them as CSV."""
    with _connected(ctx, port) as scanner:
        with _progress_bar("Reading channels") as update:
            channels = read_all(scanner, progress=update)

    count = save_csv(channels, output)
    programmed = sum(1 for ch in channels if not ch.is_empty)
    print(f"Saved {count} channels ({programmed} programmed) to {output}")


@app.command()
def write(
    ctx: typer.Context,
    port: PortArg,
    csv_file: Annotated[Path, typer.Argument(exists=True, dir_okay=False,
                                             help="CSV file to program.")],
    changed_only: Annotated[Optional[Path], typer.Option(
        exists=True, dir_okay=False,
        help="CSV of what the scanner currently holds; only differing "
             "channels are written.")] = None,
) -> None:
    """Program channels from a CSV file."""
    channels = load_csv(csv_file)
    with _connected(ctx, port) as scanner:
        with _progress_bar("Programming channels") as update:
            if changed_only is not None:
                successes, attempted = write_changed(
                    scanner, load_csv(changed_only), channels, progress=update
                )
            else:
                successes = write_all(scanner, channels, progress=update)
                attempted = len(channels)

    print(f"Programmed {successes}/{attempted} channels")
    if successes < attempted:
        raise typer.Exit(code=1)


@app.command()
def clear(
    ctx: typer.Context,
    port: PortArg,
    index: Annotated[int, typer.Argument(min=1, max=500,
                                         help="Channel number.")],
) -> None:
    """Delete one channel on the scanner."""
    with _connected(ctx, port) as scanner:
        try:
            deleted = scanner.delete_channel(index)
        except ScannerError as e:
            print(f"[red]Failed to delete channel {index}:[/red] {e}")
            raise typer.Exit(code=1)
    if not deleted:
        print(f"[red]Scanner rejected deleting channel {index}[/red]")
        raise typer.Exit(code=1)
    print(f"Channel {index} cleared")


@app.command()
def show(
    csv_file: Annotated[Path, typer.Argument(exists=True, dir_okay=False)],
    text: Annotated[str, typer.Option(
        "--filter", "-f", help="Match name or frequency.")] = "",
    show_empty: Annotated[bool, typer.Option(
        help="Include empty channels.")] = False,
) -> None:
    """Print the channels of a CSV file as a table."""
    table = Table("Ch", "Name", "MHz", "Mod", "CTCSS/DCS", "Delay",
                  "Lockout", "Priority", title=str(csv_file))
    for ch in filter_channels(load_csv(csv_file), text, show_empty):
        table.add_row(
            str(ch.index), ch.name, format_frequency_mhz(ch.frequency_hz100),
            ch.modulation.value, render_tone(ch.tone), f"{ch.delay}s",
            "✓" if ch.lockout else "", "✓" if ch.priority else "",
        )
    print(table)


if __name__ == "__main__":
    app()
