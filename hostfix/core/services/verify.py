"""
Post-install diagnostics — raw output for the operator to judge.

Every check is read-only and every failure is swallowed: this stage
cannot change the run's exit status.  Each check returns a titled
section; the workflow prints them in order.
"""

from __future__ import annotations

import glob
import logging
import re
import time
from collections.abc import Callable
from typing import Any

from pydantic import BaseModel

from hostfix.adapters.shell.command import run_command

logger = logging.getLogger(__name__)

ASOUND_CODEC_GLOB = "/proc/asound/card*/codec*"


class DiagnosticSection(BaseModel):
    title: str
    output: str = ""
    ok: bool = True


def _command_output(argv: list[str]) -> tuple[str, bool]:
    result = run_command(argv, timeout=30)
    text = result.stdout if result.stdout else result.stderr
    return text.rstrip("\n"), result.ok


def _grep(text: str, pattern: str, *, flags: int = 0) -> list[str]:
    rx = re.compile(pattern, flags)
    return [line for line in text.splitlines() if rx.search(line)]


def _safe(title: str, check: Callable[..., DiagnosticSection], *args: Any) -> DiagnosticSection:
    """Run one check; any error becomes an empty failed section."""
    try:
        return check(*args)
    except Exception as e:
        logger.debug("Diagnostic %s failed: %s", title, e, exc_info=True)
        return DiagnosticSection(title=title, output=str(e), ok=False)


# ── Wi-Fi ───────────────────────────────────────────────────────


def dmesg_tail(module: str, lines: int = 25) -> DiagnosticSection:
    text, ok = _command_output(["dmesg"])
    matches = _grep(text, re.escape(module), flags=re.IGNORECASE) if ok else []
    return DiagnosticSection(
        title=f"dmesg ({module})",
        output="\n".join(matches[-lines:]),
        ok=ok,
    )


def iw_dev() -> DiagnosticSection:
    text, ok = _command_output(["iw", "dev"])
    return DiagnosticSection(title="iw dev", output=text, ok=ok)


def iw_phy_head(lines: int = 60) -> DiagnosticSection:
    text, ok = _command_output(["iw", "phy"])
    head = "\n".join(text.splitlines()[:lines]) if ok else ""
    return DiagnosticSection(title="iw phy (head)", output=head, ok=ok)


def wifi_diagnostics(module: str = "brcmfmac") -> list[DiagnosticSection]:
    return [
        _safe("dmesg", dmesg_tail, module),
        _safe("iw dev", iw_dev),
        _safe("iw phy (head)", iw_phy_head),
    ]


# ── Audio ───────────────────────────────────────────────────────


def asound_codecs(pattern: str = ASOUND_CODEC_GLOB) -> DiagnosticSection:
    found: list[str] = []
    for path in sorted(glob.glob(pattern)):
        try:
            with open(path, encoding="utf-8", errors="replace") as f:
                found.extend(f"{path}:{line.rstrip()}" for line in f if "Codec:" in line)
        except OSError:
            continue
    return DiagnosticSection(title="ALSA codecs", output="\n".join(found), ok=bool(found))


def lsmod_filter(pattern: str = r"cs8409|hda_codec") -> DiagnosticSection:
    text, ok = _command_output(["lsmod"])
    matches = _grep(text, pattern) if ok else []
    return DiagnosticSection(title="lsmod", output="\n".join(matches), ok=ok and bool(matches))


def aplay_list(nudge_seconds: float = 2.0) -> DiagnosticSection:
    """``aplay -l``; when ALSA sees no card yet, nudge it once first."""
    probe = run_command(["aplay", "-l"], timeout=30)
    if not probe.ok:
        logger.info("ALSA reports no cards yet; nudging ALSA once")
        run_command(["alsa", "force-reload"], timeout=120)
        if nudge_seconds > 0:
            time.sleep(nudge_seconds)
    text, ok = _command_output(["aplay", "-l"])
    return DiagnosticSection(title="aplay -l", output=text, ok=ok)


def pactl_sinks() -> DiagnosticSection:
    text, ok = _command_output(["pactl", "list", "short", "sinks"])
    return DiagnosticSection(title="pactl sinks", output=text, ok=ok)


def audio_diagnostics(nudge_seconds: float = 2.0) -> list[DiagnosticSection]:
    return [
        _safe("ALSA codecs", asound_codecs),
        _safe("lsmod", lsmod_filter),
        _safe("aplay -l", aplay_list, nudge_seconds),
        _safe("pactl sinks", pactl_sinks),
    ]
