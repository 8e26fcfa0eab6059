"""
Artifact fetcher — remote first, local copy second, fatal otherwise.

The artifact is staged in a temporary file whose lifetime is scoped by
``staged_file()``: it is removed when the ``with`` block exits for any
reason, and an ``atexit`` hook covers interpreter shutdown paths that
skip the block's cleanup.
"""

from __future__ import annotations

import atexit
import enum
import functools
import logging
import os
import shutil
import tempfile
from collections.abc import Callable, Iterator, Sequence
from contextlib import contextmanager
from pathlib import Path

from pydantic import BaseModel, Field

from hostfix.adapters.shell.command import has_command, run_command
from hostfix.core.errors import ArtifactUnavailableError

logger = logging.getLogger(__name__)


class FetchTool(enum.Enum):
    CURL = "curl"
    WGET = "wget"
    NONE = "none"


class FetchOutcome(BaseModel):
    """Where the staged artifact came from."""

    source: str             # "remote" | "local"
    location: str           # URL or local path
    size: int
    warnings: list[str] = Field(default_factory=list)


def probe_fetch_tool() -> FetchTool:
    """First available download client, curl preferred."""
    for tool in (FetchTool.CURL, FetchTool.WGET):
        if has_command(tool.value):
            return tool
    return FetchTool.NONE


def _remove(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning("Could not remove temporary file %s: %s", path, e)


@contextmanager
def staged_file(prefix: str = "hostfix-") -> Iterator[Path]:
    """Yield an empty temporary file that is deleted on every exit path."""
    fd, name = tempfile.mkstemp(prefix=prefix)
    os.close(fd)
    path = Path(name)
    cleanup = functools.partial(_remove, path)
    atexit.register(cleanup)
    logger.debug("Staging file %s", path)
    try:
        yield path
    finally:
        cleanup()
        atexit.unregister(cleanup)


def is_nonempty(path: Path) -> bool:
    try:
        return path.is_file() and path.stat().st_size > 0
    except OSError:
        return False


def download(url: str, dest: Path, tool: FetchTool) -> bool:
    """Download ``url`` into ``dest`` with the given client.

    Returns:
        True only if the client succeeded AND produced a non-empty file.
        A zero-byte download counts as a failure.
    """
    match tool:
        case FetchTool.CURL:
            result = run_command(["curl", "-fsSL", url, "-o", str(dest)], timeout=120)
        case FetchTool.WGET:
            result = run_command(["wget", "-qO", str(dest), url], timeout=120)
        case FetchTool.NONE:
            return False

    if not result.ok:
        logger.info("Download failed (%s exit %d)", tool.value, result.returncode)
        return False
    if not is_nonempty(dest):
        logger.info("Download produced an empty file: %s", url)
        return False
    return True


def fetch_artifact(
    url: str,
    fallbacks: Sequence[Path],
    dest: Path,
    *,
    tool: FetchTool | None = None,
    announce: Callable[[str, str], None] | None = None,
) -> FetchOutcome:
    """Fill ``dest`` from ``url``, else from the first non-empty fallback.

    Args:
        url: Primary remote source.
        fallbacks: Local copies, in preference order.
        dest: The staged file to populate.
        tool: Download client; probed when None.
        announce: Optional ``callable(level, message)`` for operator output.

    Raises:
        ArtifactUnavailableError: Neither source produced a non-empty file.
    """
    say = announce or (lambda level, msg: None)
    warnings: list[str] = []
    fallback_hint = ", ".join(str(p) for p in fallbacks) or "(none configured)"

    if tool is None:
        tool = probe_fetch_tool()

    if tool is FetchTool.NONE:
        msg = f"No curl/wget found, checking for local copy: {fallback_hint}"
        say("warn", msg)
        warnings.append(msg)
    else:
        say("info", f"Downloading from: {url}")
        if download(url, dest, tool):
            size = dest.stat().st_size
            logger.info("Fetched %d bytes from %s", size, url)
            return FetchOutcome(source="remote", location=url, size=size, warnings=warnings)
        msg = f"Download failed, checking for local copy: {fallback_hint}"
        say("warn", msg)
        warnings.append(msg)

    for candidate in fallbacks:
        if is_nonempty(candidate):
            say("info", f"Using local file: {candidate}")
            shutil.copyfile(candidate, dest)
            size = dest.stat().st_size
            return FetchOutcome(
                source="local", location=str(candidate), size=size, warnings=warnings
            )
        logger.debug("Fallback not usable: %s", candidate)

    raise ArtifactUnavailableError(
        "Could not obtain the artifact (download failed and no local copy found)."
    )
