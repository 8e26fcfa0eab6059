"""
Driver build prerequisites and the third-party installer hand-off.

The CS8409 driver is built by the installer script shipped in its own
repository; this module only gets the host ready for it (toolchain,
headers, kernel source tree) and runs it.  Package installs stream to
the terminal so the operator can follow apt's progress.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path

from hostfix.adapters.shell.command import run_command
from hostfix.core.errors import CommandFailedError
from hostfix.core.models.command import CommandResult

logger = logging.getLogger(__name__)

_APT_ENV = {"DEBIAN_FRONTEND": "noninteractive"}
_TARBALL_SUFFIX_RE = re.compile(r"\.tar\..*$")


def apt_update() -> None:
    run_command(["apt-get", "update"], env=_APT_ENV, timeout=None, capture=False).require()


def apt_install(packages: Sequence[str]) -> CommandResult:
    return run_command(
        ["apt-get", "install", "-y", *packages],
        env=_APT_ENV,
        timeout=None,
        capture=False,
    )


def dpkg_installed(package: str) -> bool:
    return run_command(["dpkg", "-s", package], timeout=30).ok


def install_build_dependencies(kernel: str, packages: Sequence[str]) -> None:
    """Toolchain, DKMS and headers for the running kernel.

    Raises:
        CommandFailedError: apt could not install them.
    """
    apt_update()
    apt_install([*packages, f"linux-headers-{kernel}"]).require()


def kernel_source_package(kernel: str) -> str:
    """``5.15.0-157-generic`` -> ``linux-source-5.15.0``."""
    major_minor = ".".join(kernel.split(".")[:2])
    return f"linux-source-{major_minor}.0"


def ensure_kernel_source(kernel: str) -> str:
    """Install the matching linux-source package, else the generic one.

    Returns:
        The package that is (now) installed.

    Raises:
        CommandFailedError: neither package could be installed.
    """
    exact = kernel_source_package(kernel)
    if dpkg_installed(exact):
        logger.info("%s already installed", exact)
        return exact
    if apt_install([exact]).ok:
        return exact
    logger.info("%s unavailable, falling back to linux-source", exact)
    apt_install(["linux-source"]).require()
    return "linux-source"


def find_source_tarball(src_root: Path) -> Path | None:
    tarballs = sorted(src_root.glob("linux-source-*.tar.*"))
    return tarballs[0] if tarballs else None


def prepare_kernel_source_tree(src_root: Path) -> Path | None:
    """Extract the linux-source tarball once and point ``linux`` at it.

    Returns:
        The extracted source directory, or None if no tarball exists.

    Raises:
        CommandFailedError: extraction failed.
    """
    tarball = find_source_tarball(src_root)
    if tarball is None:
        return None

    src_dir = src_root / _TARBALL_SUFFIX_RE.sub("", tarball.name)
    if not src_dir.is_dir():
        run_command(["tar", "-C", str(src_root), "-xf", str(tarball)], timeout=None).require()

    link = src_root / "linux"
    if link.is_symlink() or link.is_file():
        link.unlink()
    if not link.exists():
        link.symlink_to(src_dir)
    else:
        logger.warning("%s exists and is not a symlink; leaving it alone", link)
    logger.info("Kernel source tree at %s", src_dir)
    return src_dir


def run_driver_installer(repo_dir: Path, script: str) -> None:
    """Build and install the module via the repository's own installer.

    The script installs into ``/lib/modules/<kernel>/updates`` and runs
    depmod itself.

    Raises:
        CommandFailedError: the installer exited non-zero.
    """
    script_path = repo_dir / script
    if not script_path.is_file():
        raise CommandFailedError([str(script_path)], 127, f"{script} not found in {repo_dir}")
    run_command([f"./{script}"], cwd=repo_dir, timeout=None, capture=False).require()
