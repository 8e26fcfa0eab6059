"""
Shared test fixtures and configuration.

No test touches the real system: every external command goes through a
``FakeCommands`` recorder patched in place of ``run_command``, and PATH
lookups go through a fake ``shutil.which``.
"""

from __future__ import annotations

import os
import signal
from pathlib import Path
from typing import Any

import pytest

from hostfix.core.models.settings import AudioSettings, HostExpectation, WifiSettings
from hostfix.core.services.probe import HostIdentity
from tests.fakes import FakeCommands

# Every module that imported run_command by name.
_RUN_COMMAND_USERS = (
    "hostfix.core.services.fetch",
    "hostfix.core.services.install",
    "hostfix.core.services.modules",
    "hostfix.core.services.verify",
    "hostfix.core.services.driver_build",
    "hostfix.adapters.vcs.git",
    "hostfix.core.workflows.wifi",
)


@pytest.fixture
def commands(monkeypatch: pytest.MonkeyPatch) -> FakeCommands:
    fake = FakeCommands()
    for module in _RUN_COMMAND_USERS:
        monkeypatch.setattr(f"{module}.run_command", fake)
    monkeypatch.setattr("hostfix.core.services.modules.time.sleep", lambda s: None)
    monkeypatch.setattr("hostfix.core.services.verify.time.sleep", lambda s: None)
    return fake


@pytest.fixture
def restore_signals():
    """Put back SIGTERM/SIGHUP handlers a test installed."""
    saved = {sig: signal.getsignal(sig) for sig in (signal.SIGTERM, signal.SIGHUP)}
    yield
    for sig, handler in saved.items():
        signal.signal(sig, handler)


@pytest.fixture
def tools(monkeypatch: pytest.MonkeyPatch) -> set[str]:
    """Names visible on the fake PATH; tests add/remove entries."""
    available = {
        "sudo", "modprobe", "dmesg", "iw", "curl", "wget", "update-initramfs",
        "apt-get", "dpkg", "git", "tar",
    }

    def _which(name: str, *args: Any, **kwargs: Any) -> str | None:
        return f"/usr/bin/{name}" if name in available else None

    monkeypatch.setattr("shutil.which", _which)
    return available


@pytest.fixture
def host(monkeypatch: pytest.MonkeyPatch) -> HostIdentity:
    identity = HostIdentity(product="MacBookPro14,3", product_known=True,
                            kernel="5.15.0-157-generic")
    for module in ("hostfix.core.workflows.wifi", "hostfix.core.workflows.audio"):
        monkeypatch.setattr(f"{module}.probe_host", lambda: identity)
    return identity


@pytest.fixture
def wifi_settings(tmp_path: Path) -> WifiSettings:
    """Wi-Fi settings rooted in tmp_path instead of /lib and /etc."""
    return WifiSettings(
        fw_url="https://example.invalid/brcmfmac43602-pcie.txt",
        firmware_dir=tmp_path / "lib" / "firmware" / "brcm",
        fallback_paths=(tmp_path / "local" / "brcmfmac43602-pcie.txt",),
        modprobe_conf=tmp_path / "etc" / "modprobe.d" / "cfg80211-regdom.conf",
        owner_uid=os.getuid(),
        owner_gid=os.getgid(),
        settle_seconds=0,
        expect=HostExpectation(),
    )


@pytest.fixture
def audio_settings(tmp_path: Path) -> AudioSettings:
    src_root = tmp_path / "usr" / "src"
    src_root.mkdir(parents=True)
    return AudioSettings(
        repo_url="https://example.invalid/snd_hda_macbookpro",
        repo_dir=tmp_path / "usr" / "local" / "src" / "snd_hda_macbookpro",
        src_root=src_root,
        settle_seconds=0,
        alsa_nudge_seconds=0,
    )
