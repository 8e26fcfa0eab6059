"""
Git adapter — keep a driver source checkout in sync with its remote.

Uses the git CLI through the shared command runner, never a library.
A checkout is cloned when absent and hard-reset to ``origin/HEAD`` when
present, so local edits in the checkout never survive a run.
"""

from __future__ import annotations

import enum
import logging
from pathlib import Path

from hostfix.adapters.shell.command import run_command
from hostfix.core.models.command import CommandResult

logger = logging.getLogger(__name__)


class SyncAction(enum.Enum):
    CLONED = "cloned"
    UPDATED = "updated"


def run_git(*args: str, cwd: Path | None = None, timeout: int = 600) -> CommandResult:
    """Run a git command and return the result."""
    return run_command(["git", *args], cwd=cwd, timeout=timeout)


def is_checkout(path: Path) -> bool:
    return (path / ".git").is_dir()


def sync_repository(url: str, dest: Path) -> SyncAction:
    """Clone ``url`` into ``dest``, or refresh an existing checkout.

    Raises:
        CommandFailedError: clone, fetch or reset failed.
    """
    if is_checkout(dest):
        set_url = run_git("-C", str(dest), "remote", "set-url", "origin", url)
        if not set_url.ok:
            logger.warning("Could not set origin of %s to %s", dest, url)
        run_git("-C", str(dest), "fetch", "--all", "--tags").require()
        run_git("-C", str(dest), "reset", "--hard", "origin/HEAD").require()
        logger.info("Updated %s from %s", dest, url)
        return SyncAction.UPDATED

    dest.parent.mkdir(parents=True, exist_ok=True)
    run_git("clone", url, str(dest)).require()
    logger.info("Cloned %s into %s", url, dest)
    return SyncAction.CLONED
