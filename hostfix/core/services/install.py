"""
Installer — backup, place the artifact, patch it, refresh boot caches.

The one durability guarantee of the tool lives here: an existing target
is always copied aside to ``<target>.bak.<YYYYmmdd-HHMMSS>`` before it is
replaced.  Backups are never deleted.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import tempfile
from datetime import datetime
from pathlib import Path

from hostfix.adapters.shell.command import has_command, run_command

logger = logging.getLogger(__name__)

BACKUP_STAMP_FORMAT = "%Y%m%d-%H%M%S"


def backup_stamp(now: datetime | None = None) -> str:
    return (now or datetime.now()).strftime(BACKUP_STAMP_FORMAT)


def backup_path(target: Path, stamp: str) -> Path:
    return target.with_name(f"{target.name}.bak.{stamp}")


def backup_existing(target: Path, stamp: str) -> Path | None:
    """Copy ``target`` aside, preserving mode and timestamps.

    Returns:
        The backup path, or None when there was nothing to back up.
    """
    if not target.is_file():
        return None
    dest = backup_path(target, stamp)
    shutil.copy2(target, dest)
    logger.info("Backed up %s -> %s", target, dest)
    return dest


def install_file(
    staged: Path,
    target: Path,
    *,
    mode: int = 0o644,
    uid: int = 0,
    gid: int = 0,
) -> None:
    """Place ``staged`` at ``target`` with fixed mode and ownership.

    The content is written to a temporary name in the target directory,
    given its final mode/owner, then renamed over the target, so readers
    never observe a half-written file.
    """
    target.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", dir=target.parent)
    os.close(fd)
    tmp = Path(tmp_name)
    try:
        shutil.copyfile(staged, tmp)
        os.chmod(tmp, mode)
        os.chown(tmp, uid, gid)
        os.replace(tmp, target)
    except BaseException:
        tmp.unlink(missing_ok=True)
        raise
    logger.info("Installed %s (mode %o, owner %d:%d)", target, mode, uid, gid)


def patch_key_value(path: Path, key: str, value: str) -> bool:
    """Set ``key=value`` in a line-oriented text file.

    Matching is textual: a line matches when it starts with exactly
    ``key=``.  The first match is rewritten in place and any later
    matches are dropped, so exactly one ``key=`` line remains.  With no
    match the line is appended.

    Returns:
        True if an existing line was replaced, False if one was appended.
    """
    prefix = f"{key}="
    new_line = f"{prefix}{value}"
    text = path.read_text(encoding="utf-8", errors="surrogateescape")
    lines = text.splitlines(keepends=True)

    out: list[str] = []
    replaced = False
    for line in lines:
        if line.startswith(prefix):
            if replaced:
                logger.debug("Dropping duplicate %s line: %r", key, line.rstrip("\n"))
                continue
            ending = line[len(line.rstrip("\r\n")):] or "\n"
            out.append(new_line + ending)
            replaced = True
        else:
            out.append(line)

    if not replaced:
        if out and not out[-1].endswith("\n"):
            out[-1] += "\n"
        out.append(new_line + "\n")

    path.write_text("".join(out), encoding="utf-8", errors="surrogateescape")
    logger.info("%s %s in %s", "Rewrote" if replaced else "Appended", new_line, path)
    return replaced


def write_regdomain_config(path: Path, code: str) -> None:
    """Persist the cfg80211 regulatory domain as a modprobe option."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(f"options cfg80211 ieee80211_regdom={code}\n", encoding="utf-8")
    logger.info("Wrote %s (ieee80211_regdom=%s)", path, code)


# ── Boot cache refresh ──────────────────────────────────────────


class CacheTool(enum.Enum):
    UPDATE_INITRAMFS = "update-initramfs"
    DRACUT = "dracut"
    NONE = "none"


def probe_cache_tool() -> CacheTool:
    """First available initramfs builder, update-initramfs preferred."""
    for tool in (CacheTool.UPDATE_INITRAMFS, CacheTool.DRACUT):
        if has_command(tool.value):
            return tool
    return CacheTool.NONE


def refresh_boot_caches(tool: CacheTool | None = None) -> tuple[CacheTool, bool]:
    """Rebuild the initramfs so the new firmware is used at boot.

    Never fatal: a missing builder or a failed rebuild is reported to the
    caller as ``ok=False``.

    Returns:
        (tool used, ok)
    """
    if tool is None:
        tool = probe_cache_tool()

    match tool:
        case CacheTool.UPDATE_INITRAMFS:
            result = run_command(["update-initramfs", "-u", "-k", "all"], timeout=900)
        case CacheTool.DRACUT:
            result = run_command(["dracut", "-f"], timeout=900)
        case CacheTool.NONE:
            return tool, False

    return tool, result.ok
