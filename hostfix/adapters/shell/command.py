"""
Shell command adapter — run external tools and capture their output.

This is the SINGLE PLACE where ``subprocess.run`` is called.  Every
package-manager, modprobe, git, curl and diagnostic invocation goes
through ``run_command`` so logging and error capture are uniform:

- the command line is always logged at INFO,
- stdout/stderr are logged at DEBUG,
- a missing binary or a timeout becomes a failed ``CommandResult``
  rather than an exception.
"""

from __future__ import annotations

import logging
import os
import shlex
import shutil
import subprocess
import time
from collections.abc import Iterable, Mapping, Sequence
from pathlib import Path

from hostfix.core.errors import MissingCommandError
from hostfix.core.models.command import CommandResult

logger = logging.getLogger(__name__)

# Conventional shell exit codes for "not found" and "timed out".
_RC_NOT_FOUND = 127
_RC_TIMEOUT = 124


def format_argv(argv: Sequence[str]) -> str:
    return " ".join(shlex.quote(a) for a in argv)


def run_command(
    argv: Sequence[str],
    *,
    cwd: str | Path | None = None,
    env: Mapping[str, str] | None = None,
    timeout: int | None = 600,
    capture: bool = True,
) -> CommandResult:
    """Run a command and return its captured outcome.

    Args:
        argv: Command and arguments (never passed through a shell).
        cwd: Working directory for the command.
        env: Extra environment variables layered over ``os.environ``.
        timeout: Seconds before the command is killed. ``None`` = no limit.
        capture: If False, output goes straight to the terminal (used for
            long builds the operator should watch).
    """
    argv_list = [str(a) for a in argv]
    logger.info("CMD %s", format_argv(argv_list))
    start = time.monotonic()

    try:
        p = subprocess.run(
            argv_list,
            cwd=str(cwd) if cwd is not None else None,
            env=dict(os.environ, **(env or {})),
            text=True,
            stdout=subprocess.PIPE if capture else None,
            stderr=subprocess.PIPE if capture else None,
            timeout=timeout,
        )
    except FileNotFoundError:
        logger.warning("Command not found: %s", argv_list[0])
        return CommandResult(
            argv=argv_list,
            returncode=_RC_NOT_FOUND,
            stderr=f"{argv_list[0]}: command not found",
        )
    except subprocess.TimeoutExpired:
        logger.warning("Command timed out after %ss: %s", timeout, format_argv(argv_list))
        return CommandResult(
            argv=argv_list,
            returncode=_RC_TIMEOUT,
            stderr=f"timed out after {timeout}s",
        )

    elapsed_ms = int((time.monotonic() - start) * 1000)
    stdout = p.stdout or ""
    stderr = p.stderr or ""

    if stdout:
        logger.debug("STDOUT %s", stdout.strip())
    if stderr:
        logger.debug("STDERR %s", stderr.strip())
    if p.returncode != 0:
        logger.info("Exit %d: %s", p.returncode, format_argv(argv_list))

    return CommandResult(
        argv=argv_list,
        returncode=p.returncode,
        stdout=stdout,
        stderr=stderr,
        duration_ms=elapsed_ms,
    )


def has_command(name: str) -> bool:
    """Whether ``name`` resolves on PATH."""
    return shutil.which(name) is not None


def require_commands(names: Iterable[str]) -> None:
    """Fail fast on the first required tool that is not on PATH."""
    for name in names:
        if not has_command(name):
            raise MissingCommandError(name)
