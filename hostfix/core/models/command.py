"""
Command result model — the outcome of one external tool invocation.

The command runner never raises for a non-zero exit: it hands back a
``CommandResult`` and the caller decides whether the failure is fatal
(``require()``) or tolerated (inspect ``ok``).
"""

from __future__ import annotations

from pydantic import BaseModel, Field

from hostfix.core.errors import CommandFailedError


class CommandResult(BaseModel):
    """Captured outcome of a subprocess."""

    argv: list[str] = Field(default_factory=list)
    returncode: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_ms: int = 0

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    def require(self) -> CommandResult:
        """Return self, or raise ``CommandFailedError`` if the command failed."""
        if not self.ok:
            raise CommandFailedError(self.argv, self.returncode, self.stderr)
        return self
