"""
Operator console — the colored, prefixed lines a run prints.

    [INFO] progress        (blue)
    [WARN] tolerated issue (yellow)
    [ OK ] success         (green)
    [FAIL] fatal error     (red)
"""

from __future__ import annotations

from collections.abc import Iterable

import click

from hostfix.core.services.verify import DiagnosticSection

_STYLES: dict[str, tuple[str, str]] = {
    "info": ("[INFO]", "blue"),
    "warn": ("[WARN]", "yellow"),
    "ok": ("[ OK ]", "green"),
    "fail": ("[FAIL]", "red"),
}


def announce(level: str, message: str) -> None:
    """Print one operator line; unknown levels print unprefixed."""
    style = _STYLES.get(level)
    if style is None:
        click.echo(message)
        return
    prefix, color = style
    click.secho(prefix, fg=color, bold=True, nl=False)
    click.echo(f" {message}")


def warn(message: str) -> None:
    announce("warn", message)


def ok(message: str) -> None:
    announce("ok", message)


def fail(message: str) -> None:
    announce("fail", message)


def print_sections(sections: Iterable[DiagnosticSection]) -> None:
    for section in sections:
        click.echo(f"---- {section.title} ----")
        if section.output:
            click.echo(section.output)
