"""
Workflows — the two straight-line host fixes.

Both run strictly in order: probe → fetch → install → activate → verify,
and assume the caller already ensured root (see
``hostfix.core.services.elevation``).  Operator output goes through an
``Announce`` callback so the core never prints directly.
"""

from __future__ import annotations

from collections.abc import Callable

# (level, message); level is one of "info", "warn", "ok", "detail".
Announce = Callable[[str, str], None]


def silent(level: str, message: str) -> None:
    """Announce callback that discards everything."""
