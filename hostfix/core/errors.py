"""
Error hierarchy — the two error classes of a host-fix run.

Fatal conditions are raised as ``FatalError`` subclasses and stop the
run at the CLI boundary with a one-line ``[FAIL]`` message and exit
status 1.  Tolerated conditions are never raised: services return a
boolean or a list of warnings and the workflow prints ``[WARN]``.
"""

from __future__ import annotations


class HostfixError(Exception):
    """Base class for all hostfix errors."""


class FatalError(HostfixError):
    """A condition that aborts the run immediately.

    Already-completed steps (backups in particular) are never rolled back.
    """

    exit_code: int = 1


class MissingCommandError(FatalError):
    """A required command-line tool is not on PATH."""

    def __init__(self, command: str):
        self.command = command
        super().__init__(f"Missing required command: {command}")


class ElevationError(FatalError):
    """Root is required but the process could not re-run itself elevated."""


class ArtifactUnavailableError(FatalError):
    """Neither the remote source nor the local fallback produced an artifact."""


class ConfigError(FatalError):
    """Settings are missing or invalid."""


class CommandFailedError(FatalError):
    """A command whose success is required exited non-zero."""

    def __init__(self, argv: list[str], returncode: int, stderr: str = ""):
        self.argv = argv
        self.returncode = returncode
        self.stderr = stderr
        detail = f": {stderr.strip().splitlines()[-1]}" if stderr.strip() else ""
        super().__init__(
            f"Command failed ({returncode}): {' '.join(argv)}{detail}"
        )
