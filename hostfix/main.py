"""
hostfix — CLI entrypoint.

Usage:
    python -m hostfix.main --help
    python -m hostfix.main wifi          # same as: bcm43602-setup
    python -m hostfix.main audio         # same as: audio-fix
    python -m hostfix.main probe
    python -m hostfix.main history
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

import click

from hostfix import __version__
from hostfix.core.observability.logging_config import setup_logging


@click.group()
@click.version_option(version=__version__, prog_name="hostfix")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose output.")
@click.option("--quiet", "-q", is_flag=True, help="Suppress non-essential output.")
@click.option("--debug", is_flag=True, help="Enable debug logging (very verbose).")
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(exists=False),
    default=None,
    help="Path to a YAML settings file (default: $HOSTFIX_CONFIG, else built-ins).",
)
@click.pass_context
def cli(
    ctx: click.Context,
    verbose: bool,
    quiet: bool,
    debug: bool,
    config_path: str | None,
) -> None:
    """MacBookPro14,3 host fixes — BCM43602 Wi-Fi and CS8409 audio."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["debug"] = debug
    ctx.obj["config_path"] = Path(config_path) if config_path else None

    # ── Logging setup (once, at process start) ──────────────────
    if debug:
        level = "DEBUG"
    elif verbose:
        level = "INFO"
    elif quiet:
        level = "ERROR"
    else:
        level = os.environ.get("HOSTFIX_LOG_LEVEL", "WARNING")

    setup_logging(
        level=level,
        log_file=os.environ.get("HOSTFIX_LOG_FILE"),
        log_file_level=os.environ.get("HOSTFIX_LOG_FILE_LEVEL"),
    )


from hostfix.ui.cli.fix import audio, wifi
from hostfix.ui.cli.status import history, probe

cli.add_command(wifi)
cli.add_command(audio)
cli.add_command(probe)
cli.add_command(history)


def _standalone(command: str, prog_name: str) -> None:
    # Global flags (-v, --debug, -c) stay usable; the subcommand goes last.
    cli.main(args=[*sys.argv[1:], command], prog_name=prog_name)


def wifi_entry() -> None:
    """``bcm43602-setup`` console script."""
    _standalone("wifi", "bcm43602-setup")


def audio_entry() -> None:
    """``audio-fix`` console script."""
    _standalone("audio", "audio-fix")


if __name__ == "__main__":
    cli()
