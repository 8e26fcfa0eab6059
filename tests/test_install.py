"""
Tests for the installer: backups, placement, the ccode patch, the
modprobe option file and the initramfs refresh dispatch.
"""

import os
import re
import stat
from datetime import datetime
from pathlib import Path

from hostfix.core.services.install import (
    CacheTool,
    backup_existing,
    backup_path,
    backup_stamp,
    install_file,
    patch_key_value,
    probe_cache_tool,
    refresh_boot_caches,
    write_regdomain_config,
)


class TestBackup:
    def test_stamp_has_second_granularity(self):
        assert backup_stamp(datetime(2026, 10, 19, 8, 5, 3)) == "20261019-080503"

    def test_backup_is_byte_identical(self, tmp_path: Path):
        target = tmp_path / "brcmfmac43602-pcie.txt"
        target.write_bytes(b"ccode=US\n\x00\xff")
        backup = backup_existing(target, "20261019-080503")
        assert backup == tmp_path / "brcmfmac43602-pcie.txt.bak.20261019-080503"
        assert backup.read_bytes() == b"ccode=US\n\x00\xff"
        assert target.read_bytes() == b"ccode=US\n\x00\xff"

    def test_backup_name_pattern(self, tmp_path: Path):
        target = tmp_path / "fw.txt"
        assert re.fullmatch(r"fw\.txt\.bak\.\d{8}-\d{6}", backup_path(target, backup_stamp()).name)

    def test_no_backup_without_target(self, tmp_path: Path):
        assert backup_existing(tmp_path / "missing.txt", "20261019-080503") is None
        assert list(tmp_path.iterdir()) == []


class TestInstallFile:
    def test_creates_target_with_mode(self, tmp_path: Path):
        staged = tmp_path / "staged"
        staged.write_bytes(b"new")
        target = tmp_path / "fw" / "brcm" / "nvram.txt"

        install_file(staged, target, mode=0o644, uid=os.getuid(), gid=os.getgid())

        assert target.read_bytes() == b"new"
        assert stat.S_IMODE(target.stat().st_mode) == 0o644
        assert staged.exists()

    def test_overwrites_and_leaves_no_temp(self, tmp_path: Path):
        staged = tmp_path / "staged"
        staged.write_bytes(b"new")
        target = tmp_path / "nvram.txt"
        target.write_bytes(b"old")

        install_file(staged, target, uid=os.getuid(), gid=os.getgid())

        assert target.read_bytes() == b"new"
        assert sorted(p.name for p in tmp_path.iterdir()) == ["nvram.txt", "staged"]


class TestPatchKeyValue:
    def test_replaces_existing_line(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("boardtype=0x062d\nccode=US\nregrev=0\n")
        assert patch_key_value(f, "ccode", "CA") is True
        assert f.read_text() == "boardtype=0x062d\nccode=CA\nregrev=0\n"

    def test_appends_when_missing(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("boardtype=0x062d\n")
        assert patch_key_value(f, "ccode", "CA") is False
        assert f.read_text() == "boardtype=0x062d\nccode=CA\n"

    def test_appends_after_unterminated_last_line(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("regrev=0")
        patch_key_value(f, "ccode", "CA")
        assert f.read_text() == "regrev=0\nccode=CA\n"

    def test_duplicates_collapse_to_one(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("ccode=US\nregrev=0\nccode=DE\n")
        patch_key_value(f, "ccode", "CA")
        lines = f.read_text().splitlines()
        assert [line for line in lines if line.startswith("ccode=")] == ["ccode=CA"]
        assert lines == ["ccode=CA", "regrev=0"]

    def test_matches_exact_key_at_line_start(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("ccodex=1\n# ccode=US\n xccode=2\n")
        assert patch_key_value(f, "ccode", "CA") is False
        assert f.read_text() == "ccodex=1\n# ccode=US\n xccode=2\nccode=CA\n"

    def test_idempotent(self, tmp_path: Path):
        f = tmp_path / "nvram.txt"
        f.write_text("ccode=US\n")
        patch_key_value(f, "ccode", "CA")
        patch_key_value(f, "ccode", "CA")
        assert f.read_text() == "ccode=CA\n"


class TestRegdomainConfig:
    def test_writes_single_option_line(self, tmp_path: Path):
        conf = tmp_path / "modprobe.d" / "cfg80211-regdom.conf"
        conf.parent.mkdir()
        conf.write_text("options cfg80211 ieee80211_regdom=US\n")
        write_regdomain_config(conf, "CA")
        assert conf.read_text() == "options cfg80211 ieee80211_regdom=CA\n"


class TestBootCaches:
    def test_prefers_update_initramfs(self, tools):
        assert probe_cache_tool() is CacheTool.UPDATE_INITRAMFS

    def test_falls_back_to_dracut(self, tools):
        tools.discard("update-initramfs")
        tools.add("dracut")
        assert probe_cache_tool() is CacheTool.DRACUT

    def test_none_available(self, tools):
        tools.discard("update-initramfs")
        tools.discard("dracut")
        assert probe_cache_tool() is CacheTool.NONE

    def test_dispatch_update_initramfs(self, commands):
        assert refresh_boot_caches(CacheTool.UPDATE_INITRAMFS) == (CacheTool.UPDATE_INITRAMFS, True)
        assert commands.calls == [["update-initramfs", "-u", "-k", "all"]]

    def test_dispatch_dracut(self, commands):
        refresh_boot_caches(CacheTool.DRACUT)
        assert commands.calls == [["dracut", "-f"]]

    def test_none_runs_nothing(self, commands):
        assert refresh_boot_caches(CacheTool.NONE) == (CacheTool.NONE, False)
        assert commands.calls == []

    def test_failure_is_reported_not_raised(self, commands):
        commands.on("dracut", returncode=1, stderr="dracut: boom")
        assert refresh_boot_caches(CacheTool.DRACUT) == (CacheTool.DRACUT, False)
