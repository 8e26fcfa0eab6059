"""
Environment probe — host identity and a permissive match against it.

Read-only.  A mismatch produces warnings, never an error: the fixes are
usable on close relatives of the target laptop and on nearby kernels.
"""

from __future__ import annotations

import fnmatch
import logging
import platform
from pathlib import Path

from pydantic import BaseModel

from hostfix.core.models.settings import HostExpectation

logger = logging.getLogger(__name__)

DMI_PRODUCT_NAME = Path("/sys/class/dmi/id/product_name")


class HostIdentity(BaseModel):
    product: str = "unknown"
    product_known: bool = False   # False when the DMI file was unreadable
    kernel: str = ""


def read_product_name(path: Path = DMI_PRODUCT_NAME) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip()
    except OSError:
        return None


def probe_host(dmi_path: Path = DMI_PRODUCT_NAME) -> HostIdentity:
    product = read_product_name(dmi_path)
    identity = HostIdentity(
        product=product if product else "unknown",
        product_known=product is not None,
        kernel=platform.release(),
    )
    logger.debug("Host identity: %s", identity)
    return identity


def check_identity(identity: HostIdentity, expect: HostExpectation) -> list[str]:
    """Compare the host against what the fix is tuned for.

    Returns:
        Human-readable warnings, empty when everything matches.
    """
    warnings: list[str] = []

    if not fnmatch.fnmatchcase(identity.kernel, expect.kernel_pattern):
        warnings.append(
            f"Kernel is not {expect.kernel_pattern.replace('*', 'x')}. "
            f"Script is tuned for it but will proceed."
        )

    # Only complain when DMI was readable: VMs and containers often hide it.
    if identity.product_known and expect.product not in identity.product:
        warnings.append(f"This does not look like a {expect.product}. Proceeding anyway.")

    return warnings
