"""
BCM43602 Wi-Fi workflow.

Installs the ``brcmfmac43602-pcie.txt`` NVRAM file, optionally pins the
regulatory domain (modprobe option + NVRAM ``ccode=`` + live ``iw reg
set``), rebuilds the initramfs and reloads ``brcmfmac``.

Fatal: missing required tool, no NVRAM obtainable, invalid settings.
Everything else is a warning.
"""

from __future__ import annotations

import logging

from hostfix.adapters.shell.command import require_commands, run_command
from hostfix.core.models.run import RunReport
from hostfix.core.models.settings import WifiSettings
from hostfix.core.services.fetch import fetch_artifact, staged_file
from hostfix.core.services.install import (
    CacheTool,
    backup_existing,
    backup_stamp,
    install_file,
    patch_key_value,
    refresh_boot_caches,
    write_regdomain_config,
)
from hostfix.core.services.modules import reload_module
from hostfix.core.services.probe import check_identity, probe_host
from hostfix.core.services.verify import DiagnosticSection, wifi_diagnostics
from hostfix.core.workflows import Announce, silent

logger = logging.getLogger(__name__)

WORKFLOW = "wifi"
CCODE_KEY = "ccode"


def _warn(report: RunReport, say: Announce, message: str) -> None:
    report.warnings.append(message)
    say("warn", message)


def run_wifi_setup(
    settings: WifiSettings,
    report: RunReport,
    announce: Announce | None = None,
    *,
    stamp: str | None = None,
) -> list[DiagnosticSection]:
    """Run the Wi-Fi fix end to end.

    Args:
        settings: Resolved Wi-Fi settings.
        report: Run report to fill; left partially filled on a fatal error.
        announce: Operator output callback.
        stamp: Backup timestamp override (default: now, second granularity).

    Returns:
        Diagnostic sections for the operator.

    Raises:
        FatalError: see module docstring.
    """
    say = announce or silent
    target = settings.target

    require_commands(settings.required_commands)

    # ── Probe ───────────────────────────────────────────────────
    identity = probe_host()
    report.product, report.kernel = identity.product, identity.kernel
    say("info", "Detected system:")
    say("detail", f"  Product: {identity.product}")
    say("detail", f"  Kernel : {identity.kernel}")
    mismatches = check_identity(identity, settings.expect)
    for message in mismatches:
        _warn(report, say, message)
    report.record("probe", "warned" if mismatches else "ok")

    # ── Fetch + install ─────────────────────────────────────────
    with staged_file(prefix="brcmfmac-") as staged:
        outcome = fetch_artifact(
            settings.fw_url,
            settings.fallback_paths,
            staged,
            announce=say,
        )
        report.warnings.extend(outcome.warnings)
        report.record(
            "fetch",
            "warned" if outcome.source == "local" else "ok",
            outcome.location,
            source=outcome.source,
            size=outcome.size,
        )

        settings.firmware_dir.mkdir(parents=True, exist_ok=True)
        backup = backup_existing(target, stamp or backup_stamp())
        if backup is not None:
            say("info", f"Backed up existing firmware NVRAM to: {backup}")
            report.backup_path = str(backup)

        say("info", f"Installing NVRAM to {target}")
        install_file(
            staged,
            target,
            mode=settings.file_mode,
            uid=settings.owner_uid,
            gid=settings.owner_gid,
        )
        report.record("install", detail=str(target), backup=report.backup_path)

    # ── Persistent regulatory domain ────────────────────────────
    code = settings.regdomain
    if code:
        say("info", f"Setting persistent regulatory domain to: {code}")
        write_regdomain_config(settings.modprobe_conf, code)
        patch_key_value(target, CCODE_KEY, code)
        report.record("regdomain", detail=code, config=str(settings.modprobe_conf))
    else:
        report.record("regdomain", "skipped", "REGDOMAIN not set")

    # ── Boot caches ─────────────────────────────────────────────
    tool, cache_ok = refresh_boot_caches()
    if tool is CacheTool.NONE:
        _warn(report, say, "No initramfs tool found (update-initramfs/dracut). Skipping.")
        report.record("initramfs", "skipped", "no tool")
    elif not cache_ok:
        _warn(report, say, f"{tool.value} failed; the new NVRAM applies after the next rebuild.")
        report.record("initramfs", "warned", tool.value)
    else:
        say("info", f"Initramfs rebuilt with {tool.value}")
        report.record("initramfs", detail=tool.value)

    # ── Activate ────────────────────────────────────────────────
    say("info", f"Reloading {settings.module} module...")
    if reload_module(settings.module, settings.settle_seconds):
        report.record("reload", detail=settings.module)
    else:
        _warn(report, say, f"Reloading {settings.module} failed (a reboot will load it).")
        report.record("reload", "warned", settings.module)

    if code:
        say("info", f"Applying live reg domain: {code}")
        if run_command(["iw", "reg", "set", code], timeout=30).ok:
            report.record("regdomain-live", detail=code)
        else:
            _warn(report, say, "iw reg set failed (may require reboot).")
            report.record("regdomain-live", "warned", code)

    # ── Verify ──────────────────────────────────────────────────
    say("ok", "Done. Quick checks:")
    sections = wifi_diagnostics(settings.module)
    report.record("verify", detail=", ".join(s.title for s in sections if not s.ok))
    return sections
