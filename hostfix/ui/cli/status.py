"""
Read-only CLI commands: ``probe`` (what the fixes would see) and
``history`` (recent runs from the ledger).  Neither needs root.
"""

from __future__ import annotations

import json
import sys

import click

from hostfix.core.errors import ConfigError
from hostfix.ui.cli import console
from hostfix.ui.cli.fix import load_cli_settings


@click.command()
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def probe(ctx: click.Context, as_json: bool) -> None:
    """Show host identity, detected tools and the resolved settings."""
    from hostfix.core.services.fetch import probe_fetch_tool
    from hostfix.core.services.install import probe_cache_tool
    from hostfix.core.services.probe import check_identity, probe_host

    try:
        settings = load_cli_settings(ctx)
    except ConfigError as e:
        console.fail(str(e))
        sys.exit(e.exit_code)

    identity = probe_host()
    warnings = check_identity(identity, settings.wifi.expect)
    fetch_tool = probe_fetch_tool()
    cache_tool = probe_cache_tool()
    target = settings.wifi.target

    if as_json:
        click.echo(json.dumps({
            "host": identity.model_dump(),
            "warnings": warnings,
            "fetch_tool": fetch_tool.value,
            "cache_tool": cache_tool.value,
            "wifi": {
                "fw_url": settings.wifi.fw_url,
                "regdomain": settings.wifi.regdomain,
                "target": str(target),
                "target_exists": target.is_file(),
            },
            "audio": {
                "repo_url": settings.audio.repo_url,
                "repo_dir": str(settings.audio.repo_dir),
            },
        }, indent=2))
        return

    click.secho("Host:", fg="cyan", bold=True)
    click.echo(f"   Product: {identity.product}")
    click.echo(f"   Kernel : {identity.kernel}")
    for message in warnings:
        console.warn(message)
    click.echo()
    click.secho("Tools:", fg="cyan", bold=True)
    click.echo(f"   Download : {fetch_tool.value}")
    click.echo(f"   Initramfs: {cache_tool.value}")
    click.echo()
    click.secho("Wi-Fi:", fg="cyan", bold=True)
    click.echo(f"   NVRAM URL : {settings.wifi.fw_url}")
    click.echo(f"   Target    : {target} ({'present' if target.is_file() else 'absent'})")
    click.echo(f"   Reg domain: {settings.wifi.regdomain or '(not set)'}")
    click.echo()
    click.secho("Audio:", fg="cyan", bold=True)
    click.echo(f"   Repo    : {settings.audio.repo_url}")
    click.echo(f"   Checkout: {settings.audio.repo_dir}")


@click.command()
@click.option("-n", "count", default=10, show_default=True, help="Number of runs to show.")
@click.option("--json-output", "--json", "as_json", is_flag=True, help="Output as JSON.")
@click.pass_context
def history(ctx: click.Context, count: int, as_json: bool) -> None:
    """Show recent runs recorded in the run ledger."""
    from hostfix.core.persistence.ledger import RunLedger

    try:
        settings = load_cli_settings(ctx)
    except ConfigError as e:
        console.fail(str(e))
        sys.exit(e.exit_code)

    ledger = RunLedger(settings.ledger_path)
    runs = ledger.read_recent(count)

    if as_json:
        click.echo(json.dumps([r.model_dump(mode="json") for r in runs], indent=2))
        return

    if not runs:
        click.echo(f"No runs recorded in {ledger.path}")
        return

    for run in runs:
        color = "green" if run.status == "ok" else "red"
        click.secho(f"{run.started_at}  {run.workflow:<6} {run.status:<7}", fg=color, nl=False)
        click.echo(f" {run.run_id}")
        if run.backup_path:
            click.echo(f"   backup : {run.backup_path}")
        if run.error:
            click.echo(f"   error  : {run.error}")
        for message in run.warnings:
            click.echo(f"   warning: {message}")
