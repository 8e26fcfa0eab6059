"""
CS8409 audio workflow.

Gets the running kernel's headers and source in place, syncs the driver
repository, runs its installer, reloads ``snd_hda_codec_cs8409`` and
prints ALSA/PulseAudio diagnostics.
"""

from __future__ import annotations

import logging

from hostfix.adapters.shell.command import require_commands
from hostfix.adapters.vcs.git import sync_repository
from hostfix.core.models.run import RunReport
from hostfix.core.models.settings import AudioSettings
from hostfix.core.services.driver_build import (
    ensure_kernel_source,
    install_build_dependencies,
    prepare_kernel_source_tree,
    run_driver_installer,
)
from hostfix.core.services.modules import reload_module
from hostfix.core.services.probe import check_identity, probe_host
from hostfix.core.services.verify import DiagnosticSection, audio_diagnostics
from hostfix.core.workflows import Announce, silent

logger = logging.getLogger(__name__)

WORKFLOW = "audio"

NEXT_STEPS = """\
Next steps (if needed):
  1) Open Settings > Sound and choose "Analog Stereo Output".
  2) If you still see "Dummy Output", reboot once and re-check.

Tip:
  After kernel updates within 5.15.x, re-run this tool to rebuild if audio disappears."""


def run_audio_fix(
    settings: AudioSettings,
    report: RunReport,
    announce: Announce | None = None,
) -> list[DiagnosticSection]:
    """Build and load the CS8409 driver for the running kernel.

    Raises:
        FatalError: missing tool, apt/git/installer failure.
    """
    say = announce or silent

    require_commands(settings.required_commands)

    identity = probe_host()
    report.product, report.kernel = identity.product, identity.kernel
    mismatches = check_identity(identity, settings.expect)
    for message in mismatches:
        report.warnings.append(message)
        say("warn", message)
    report.record("probe", "warned" if mismatches else "ok")
    kernel = identity.kernel

    say("info", "Installing build deps, headers, and kernel source…")
    install_build_dependencies(kernel, settings.build_packages)
    source_pkg = ensure_kernel_source(kernel)
    report.record("build-deps", detail=source_pkg)

    say("info", "Ensuring the linux-source tarball is present and extracted…")
    src_dir = prepare_kernel_source_tree(settings.src_root)
    if src_dir is None:
        message = (
            f"No linux-source tarball found in {settings.src_root}. "
            "The driver installer may still succeed; continuing."
        )
        report.warnings.append(message)
        say("warn", message)
        report.record("kernel-source", "warned")
    else:
        report.record("kernel-source", detail=str(src_dir))

    say("info", f"Getting/refreshing the CS8409 driver repo: {settings.repo_url}")
    action = sync_repository(settings.repo_url, settings.repo_dir)
    report.record("repo", detail=action.value, path=str(settings.repo_dir))

    say("info", "Building and installing the driver via the upstream installer…")
    run_driver_installer(settings.repo_dir, settings.installer_script)
    report.record("driver-install", detail=settings.installer_script)

    say("info", f"Loading {settings.module}…")
    if reload_module(settings.module, settings.settle_seconds):
        report.record("reload", detail=settings.module)
    else:
        message = f"Loading {settings.module} failed (it also loads automatically after a reboot)."
        report.warnings.append(message)
        say("warn", message)
        report.record("reload", "warned", settings.module)

    say("ok", "Quick sanity checks:")
    sections = audio_diagnostics(settings.alsa_nudge_seconds)
    report.record("verify", detail=", ".join(s.title for s in sections if not s.ok))
    return sections
