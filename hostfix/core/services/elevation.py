"""
Privilege escalation — the first phase of every workflow.

``ensure_elevated`` either reports that the process is already root or
replaces the process with ``sudo -E`` running the exact same command
line.  The workflow body only ever runs in the elevated phase; the
unprivileged invocation never returns from ``ensure_elevated``.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import sys
from collections.abc import Sequence

import click

from hostfix.core.errors import ElevationError

logger = logging.getLogger(__name__)


class ElevationStatus(enum.Enum):
    ALREADY_ELEVATED = "already-elevated"


def is_elevated() -> bool:
    return os.geteuid() == 0


def reexec_argv(sudo: str, argv: Sequence[str] | None = None) -> list[str]:
    """The command line for the elevated child.

    ``sys.orig_argv`` keeps ``-m hostfix.main`` style invocations intact;
    ``-E`` preserves FW_URL / REGDOMAIN and friends.
    """
    original = list(argv) if argv is not None else list(sys.orig_argv[1:])
    return [sudo, "-E", sys.executable, *original]


def ensure_elevated(argv: Sequence[str] | None = None) -> ElevationStatus:
    """Return if root, otherwise exec under sudo.

    Raises:
        ElevationError: sudo is not installed, or exec failed.
    """
    if is_elevated():
        logger.debug("Running as root (euid=0)")
        return ElevationStatus.ALREADY_ELEVATED

    sudo = shutil.which("sudo")
    if sudo is None:
        raise ElevationError("Root privileges required and sudo is not available")

    child = reexec_argv(sudo, argv)
    click.echo("Re-running with sudo...")
    logger.info("Exec %s", " ".join(child))
    sys.stdout.flush()
    sys.stderr.flush()

    try:
        os.execv(sudo, child)
    except OSError as e:
        raise ElevationError(f"Could not re-run with sudo: {e}") from e

    # os.execv only returns by raising; stubs in tests may return.
    raise ElevationError("Could not re-run with sudo: exec returned")
