"""Kernel module reload so new firmware/drivers apply without a reboot."""

from __future__ import annotations

import logging
import time

from hostfix.adapters.shell.command import run_command

logger = logging.getLogger(__name__)


def reload_module(name: str, settle_seconds: float = 1.0) -> bool:
    """Unload (if loaded) and load ``name`` again.

    A failing ``modprobe -r`` means the module was not loaded and is
    ignored.  A failing load is returned as False; it never rolls back
    what was installed.
    """
    unload = run_command(["modprobe", "-r", name], timeout=60)
    if not unload.ok:
        logger.debug("modprobe -r %s failed (not loaded?): %s", name, unload.stderr.strip())

    if settle_seconds > 0:
        time.sleep(settle_seconds)

    load = run_command(["modprobe", name], timeout=60)
    if not load.ok:
        logger.warning("modprobe %s failed: %s", name, load.stderr.strip())
    return load.ok
