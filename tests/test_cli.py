"""
Tests for CLI commands — the two fixes, probe, history and global options.
"""

import json
import os
import signal
import textwrap
from pathlib import Path

import pytest
from click.testing import CliRunner

from hostfix.core.errors import ElevationError
from hostfix.main import cli
from tests.fakes import NVRAM, curl_writes

# Keep the caller's environment out of settings resolution.
CLEAN_ENV = {
    "FW_URL": None,
    "REGDOMAIN": None,
    "DRIVER_REPO_URL": None,
    "HOSTFIX_CONFIG": None,
    "HOSTFIX_LEDGER": None,
}


@pytest.fixture
def as_root(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("hostfix.core.services.elevation.ensure_elevated", lambda: None)
    monkeypatch.setattr("hostfix.ui.cli.fix.install_signal_handlers", lambda: None)


@pytest.fixture
def config(tmp_path: Path) -> Path:
    """A settings file that points every system path into tmp_path."""
    content = textwrap.dedent(f"""\
        wifi:
          fw_url: https://example.invalid/brcmfmac43602-pcie.txt
          firmware_dir: {tmp_path}/lib/firmware/brcm
          fallback_paths:
            - {tmp_path}/local/brcmfmac43602-pcie.txt
          modprobe_conf: {tmp_path}/etc/modprobe.d/cfg80211-regdom.conf
          owner_uid: {os.getuid()}
          owner_gid: {os.getgid()}
          settle_seconds: 0
        audio:
          repo_dir: {tmp_path}/src/snd_hda_macbookpro
          src_root: {tmp_path}/src
        ledger_path: {tmp_path}/state/runs.ndjson
    """)
    path = tmp_path / "hostfix.yml"
    path.write_text(content)
    return path


def _invoke(args: list[str], env: dict | None = None):
    return CliRunner().invoke(cli, args, env={**CLEAN_ENV, **(env or {})})


class TestCLIGlobal:
    def test_help(self):
        result = _invoke(["--help"])
        assert result.exit_code == 0
        assert "BCM43602" in result.output
        for command in ("wifi", "audio", "probe", "history"):
            assert command in result.output

    def test_version(self):
        result = _invoke(["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output

    def test_missing_config_file(self, tmp_path: Path):
        result = _invoke(["--config", str(tmp_path / "nope.yml"), "probe"])
        assert result.exit_code == 1
        assert "Config file not found" in result.output


class TestWifiCommand:
    def test_success(self, config, commands, tools, host, as_root, tmp_path: Path):
        commands.on("curl", effect=curl_writes(NVRAM))

        result = _invoke(["--config", str(config), "wifi"], {"REGDOMAIN": "ca"})

        assert result.exit_code == 0, result.output
        target = tmp_path / "lib" / "firmware" / "brcm" / "brcmfmac43602-pcie.txt"
        assert "ccode=CA" in target.read_text()
        assert "Done. Quick checks:" in result.output
        assert "---- dmesg" in result.output
        assert "Backups (if any): none made" in result.output

        runs = [json.loads(line) for line in (tmp_path / "state" / "runs.ndjson").read_text().splitlines()]
        assert [(r["workflow"], r["status"]) for r in runs] == [("wifi", "ok")]

    def test_artifact_unavailable(self, config, commands, tools, host, as_root, tmp_path: Path):
        commands.on("curl", returncode=22)

        result = _invoke(["--config", str(config), "wifi"])

        assert result.exit_code == 1
        assert "[FAIL]" in result.output
        assert "Could not obtain the artifact" in result.output
        assert not (tmp_path / "lib" / "firmware" / "brcm" / "brcmfmac43602-pcie.txt").exists()
        run = json.loads((tmp_path / "state" / "runs.ndjson").read_text())
        assert run["status"] == "failed"

    def test_invalid_regdomain_is_fatal_before_changes(self, config, commands, tools, host, as_root):
        result = _invoke(["--config", str(config), "wifi"], {"REGDOMAIN": "Canada"})
        assert result.exit_code == 1
        assert "[FAIL]" in result.output
        assert commands.calls == []

    def test_sigterm_mid_download(self, config, commands, tools, host, monkeypatch,
                                  restore_signals, tmp_path: Path):
        monkeypatch.setattr("hostfix.core.services.elevation.ensure_elevated", lambda: None)
        staged: list[Path] = []

        def _killed(argv, kwargs):
            staged.append(Path(argv[argv.index("-o") + 1]))
            staged[-1].write_bytes(NVRAM[:5])
            os.kill(os.getpid(), signal.SIGTERM)

        commands.on("curl", effect=_killed)

        result = _invoke(["--config", str(config), "wifi"])

        assert result.exit_code == 128 + signal.SIGTERM
        assert staged and not staged[0].exists()
        assert not (tmp_path / "lib" / "firmware" / "brcm" / "brcmfmac43602-pcie.txt").exists()
        run = json.loads((tmp_path / "state" / "runs.ndjson").read_text())
        assert (run["status"], run["error"]) == ("failed", "interrupted")

    def test_elevation_failure(self, config, commands, tools, monkeypatch):
        def _refuse():
            raise ElevationError("Root privileges required and sudo is not available")

        monkeypatch.setattr("hostfix.core.services.elevation.ensure_elevated", _refuse)
        result = _invoke(["--config", str(config), "wifi"])
        assert result.exit_code == 1
        assert "sudo is not available" in result.output
        assert commands.calls == []


class TestAudioCommand:
    def test_missing_tool(self, config, commands, tools, host, as_root):
        tools.discard("git")
        result = _invoke(["--config", str(config), "audio"])
        assert result.exit_code == 1
        assert "Missing required command: git" in result.output

    def test_prints_next_steps(self, config, commands, tools, host, as_root, tmp_path: Path):
        repo = tmp_path / "src" / "snd_hda_macbookpro"

        def _clone(argv, kwargs):
            repo.mkdir(parents=True)
            (repo / "install.cirrus.driver.sh").write_text("#!/bin/sh\n")

        commands.on("git", "clone", effect=_clone)
        result = _invoke(["--config", str(config), "audio"])
        assert result.exit_code == 0, result.output
        assert "Analog Stereo Output" in result.output


class TestProbeCommand:
    def test_json(self, config, tools, host, monkeypatch):
        monkeypatch.setattr("hostfix.core.services.probe.probe_host", lambda: host)
        result = _invoke(["--config", str(config), "probe", "--json"], {"REGDOMAIN": "us"})
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["host"]["product"] == "MacBookPro14,3"
        assert data["fetch_tool"] == "curl"
        assert data["cache_tool"] == "update-initramfs"
        assert data["wifi"]["regdomain"] == "US"
        assert data["wifi"]["target_exists"] is False


class TestHistoryCommand:
    def test_empty(self, config):
        result = _invoke(["--config", str(config), "history"])
        assert result.exit_code == 0
        assert "No runs recorded" in result.output

    def test_lists_runs(self, config, commands, tools, host, as_root):
        commands.on("curl", returncode=22)
        _invoke(["--config", str(config), "wifi"])

        result = _invoke(["--config", str(config), "history"])
        assert result.exit_code == 0
        assert "wifi" in result.output
        assert "failed" in result.output
        assert "Could not obtain the artifact" in result.output

    def test_zero_count_lists_nothing(self, config, commands, tools, host, as_root):
        commands.on("curl", returncode=22)
        _invoke(["--config", str(config), "wifi"])

        result = _invoke(["--config", str(config), "history", "-n", "0"])
        assert result.exit_code == 0
        assert "No runs recorded" in result.output
        assert "Could not obtain the artifact" not in result.output
