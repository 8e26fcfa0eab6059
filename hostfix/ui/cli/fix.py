"""
CLI commands for the two host fixes: ``wifi`` and ``audio``.

Both commands take no arguments; behavior comes from settings
(``--config`` / ``HOSTFIX_CONFIG`` YAML, then FW_URL, REGDOMAIN and
DRIVER_REPO_URL from the environment).  Each command:

    1. resolves settings once (invalid → fatal before anything changes)
    2. ensures root, re-running itself under ``sudo -E`` if needed
    3. runs the workflow, printing progress
    4. appends the run to the ledger, success or not
    5. prints diagnostics (exit 0) or one [FAIL] line (exit 1)
"""

from __future__ import annotations

import logging
import signal
import sys
from collections.abc import Callable
from pathlib import Path
from types import FrameType

import click

from hostfix.core.errors import FatalError
from hostfix.core.models.run import RunReport
from hostfix.core.models.settings import Settings
from hostfix.core.services.verify import DiagnosticSection
from hostfix.ui.cli import console

logger = logging.getLogger(__name__)

WorkflowRunner = Callable[[Settings, RunReport], list[DiagnosticSection]]


def _raise_exit(signum: int, frame: FrameType | None) -> None:
    # Unwinds the stack so the staged download is removed on kill.
    raise SystemExit(128 + signum)


def install_signal_handlers() -> None:
    for sig in (signal.SIGTERM, signal.SIGHUP):
        signal.signal(sig, _raise_exit)


def load_cli_settings(ctx: click.Context) -> Settings:
    from hostfix.core.config.loader import load_settings

    config_path: Path | None = ctx.obj.get("config_path") if ctx.obj else None
    return load_settings(config_path)


def run_workflow(
    ctx: click.Context,
    workflow: str,
    runner: WorkflowRunner,
    epilogue: Callable[[RunReport], None],
) -> None:
    """Shared driver for both fixes: elevation, ledger, fatal handling."""
    from hostfix.core.persistence.ledger import RunLedger
    from hostfix.core.services.elevation import ensure_elevated

    try:
        settings = load_cli_settings(ctx)
        ensure_elevated()
    except FatalError as e:
        console.fail(str(e))
        sys.exit(e.exit_code)

    install_signal_handlers()
    report = RunReport(workflow=workflow)
    ledger = RunLedger(settings.ledger_path)

    try:
        sections = runner(settings, report)
    except (FatalError, OSError) as e:
        logger.debug("Fatal error in %s workflow", workflow, exc_info=True)
        report.finish(error=str(e))
        ledger.write(report)
        console.fail(str(e))
        sys.exit(getattr(e, "exit_code", 1))
    except (KeyboardInterrupt, SystemExit):
        report.finish(error="interrupted")
        ledger.write(report)
        raise

    report.finish()
    ledger.write(report)
    console.print_sections(sections)
    click.echo()
    epilogue(report)


# ── Wi-Fi ───────────────────────────────────────────────────────


def _wifi_epilogue(report: RunReport) -> None:
    console.ok("If Wi-Fi is up and channels look right, you're good. "
               "A reboot is safe but not required.")
    click.echo(f"Backups (if any): {report.backup_path or 'none made'}")


@click.command()
@click.pass_context
def wifi(ctx: click.Context) -> None:
    """Install the BCM43602 NVRAM, optionally pin the regulatory domain, reload brcmfmac.

    \b
    Environment:
      FW_URL     NVRAM download URL override
      REGDOMAIN  two-letter regulatory domain, e.g. CA (unset = skip)
    """
    from hostfix.core.workflows.wifi import WORKFLOW, run_wifi_setup

    run_workflow(
        ctx,
        WORKFLOW,
        lambda settings, report: run_wifi_setup(settings.wifi, report, console.announce),
        _wifi_epilogue,
    )


# ── Audio ───────────────────────────────────────────────────────


def _audio_epilogue(report: RunReport) -> None:
    from hostfix.core.workflows.audio import NEXT_STEPS

    click.echo(NEXT_STEPS)


@click.command()
@click.pass_context
def audio(ctx: click.Context) -> None:
    """Build and install the CS8409 audio driver for the running kernel.

    \b
    Environment:
      DRIVER_REPO_URL  driver repository override
    """
    from hostfix.core.workflows.audio import WORKFLOW, run_audio_fix

    run_workflow(
        ctx,
        WORKFLOW,
        lambda settings, report: run_audio_fix(settings.audio, report, console.announce),
        _audio_epilogue,
    )
