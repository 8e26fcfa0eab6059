"""
Settings models — everything a workflow needs, resolved once at start.

Environment variables, the optional YAML file and the built-in defaults
are merged by ``hostfix.core.config.loader`` into one of these frozen
models, which is then passed by value to every component.  Nothing
downstream reads ``os.environ`` or the current directory.
"""

from __future__ import annotations

import re
import sys
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, field_validator

FW_URL_DEFAULT = (
    "https://raw.githubusercontent.com/HezhaKh/mbp14-3/refs/heads/main/brcmfmac43602-pcie.txt"
)
FW_NAME_DEFAULT = "brcmfmac43602-pcie.txt"
DRIVER_REPO_URL_DEFAULT = "https://github.com/HezhaKh/snd_hda_macbookpro"

# ISO 3166 alpha-2, or "00" for the world regulatory domain.
_REGDOMAIN_RE = re.compile(r"^(?:[A-Z]{2}|00)$")


def _script_dir_fallbacks() -> tuple[Path, ...]:
    """Local NVRAM copies looked up when the download fails.

    The package's ``fallback/`` directory, then the directory holding
    the invoked entry point.
    """
    candidates = [
        Path(__file__).resolve().parents[2] / "fallback" / FW_NAME_DEFAULT,
        Path(sys.argv[0]).resolve().parent / FW_NAME_DEFAULT,
    ]
    return tuple(dict.fromkeys(candidates))


class HostExpectation(BaseModel):
    """Hardware/kernel the fixes are tuned for. Mismatch only warns."""

    model_config = ConfigDict(frozen=True)

    product: str = "MacBookPro14,3"
    kernel_pattern: str = "5.15.*"   # fnmatch pattern against uname -r


class WifiSettings(BaseModel):
    """BCM43602 NVRAM install."""

    model_config = ConfigDict(frozen=True)

    fw_url: str = FW_URL_DEFAULT
    regdomain: str | None = None

    firmware_dir: Path = Path("/lib/firmware/brcm")
    firmware_name: str = FW_NAME_DEFAULT
    fallback_paths: tuple[Path, ...] = Field(default_factory=_script_dir_fallbacks)
    modprobe_conf: Path = Path("/etc/modprobe.d/cfg80211-regdom.conf")

    file_mode: int = 0o644
    owner_uid: int = 0
    owner_gid: int = 0

    module: str = "brcmfmac"
    settle_seconds: float = 1.0

    expect: HostExpectation = Field(default_factory=HostExpectation)
    required_commands: tuple[str, ...] = ("modprobe", "dmesg", "iw")

    @field_validator("regdomain", mode="before")
    @classmethod
    def _normalize_regdomain(cls, value: object) -> object:
        if value is None:
            return None
        # Unquoted YAML 1.1 scalars: NO (Norway) loads as False, 00 as 0.
        if value is False:
            value = "NO"
        elif type(value) is int and value == 0:
            value = "00"
        if not isinstance(value, str):
            raise ValueError(
                f"regulatory domain must be a string, got {value!r} (quote it in YAML)"
            )
        code = value.strip().upper()
        if not code:
            return None
        if not _REGDOMAIN_RE.match(code):
            raise ValueError(
                f"invalid regulatory domain {value!r} (expected two letters, e.g. CA, or 00)"
            )
        return code

    @property
    def target(self) -> Path:
        return self.firmware_dir / self.firmware_name


class AudioSettings(BaseModel):
    """CS8409 driver build and install."""

    model_config = ConfigDict(frozen=True)

    repo_url: str = DRIVER_REPO_URL_DEFAULT
    repo_dir: Path = Path("/usr/local/src/snd_hda_macbookpro")
    installer_script: str = "install.cirrus.driver.sh"

    build_packages: tuple[str, ...] = ("build-essential", "dkms")
    src_root: Path = Path("/usr/src")

    module: str = "snd_hda_codec_cs8409"
    settle_seconds: float = 1.0
    alsa_nudge_seconds: float = 2.0

    expect: HostExpectation = Field(default_factory=HostExpectation)
    required_commands: tuple[str, ...] = ("apt-get", "dpkg", "git", "modprobe", "tar")


class Settings(BaseModel):
    """Top-level settings: one section per workflow plus the run ledger."""

    model_config = ConfigDict(frozen=True)

    wifi: WifiSettings = Field(default_factory=WifiSettings)
    audio: AudioSettings = Field(default_factory=AudioSettings)
    ledger_path: Path = Path("/var/lib/hostfix/runs.ndjson")
