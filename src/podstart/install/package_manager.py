"""OS package manager detection.

The first manager found on PATH wins, in the order below.  Managers that
need root are run through the privilege ladder; brew refuses sudo and is
always run as the invoking user.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from ..host import Host

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PackageManager:
    """Install-by-name capability of one OS package manager."""

    name: str
    install: tuple[str, ...]
    refresh: tuple[str, ...] | None = None
    needs_root: bool = True
    # Package names that differ for this manager; "" means not needed
    renames: dict[str, str] = field(default_factory=dict)

    def install_argv(self, *packages: str) -> list[str]:
        names = [self.renames.get(p, p) for p in packages]
        return [*self.install, *(n for n in names if n)]


_APT_ENV = ("env", "DEBIAN_FRONTEND=noninteractive")

KNOWN_MANAGERS: tuple[PackageManager, ...] = (
    PackageManager(
        "apt-get",
        install=(*_APT_ENV, "apt-get", "install", "-y", "-qq"),
        refresh=(*_APT_ENV, "apt-get", "update", "-qq"),
    ),
    PackageManager("yum", install=("yum", "install", "-y")),
    PackageManager("dnf", install=("dnf", "install", "-y")),
    PackageManager("pacman", install=("pacman", "-S", "--noconfirm")),
    PackageManager("apk", install=("apk", "add", "--no-cache")),
    PackageManager("zypper", install=("zypper", "--non-interactive", "install")),
    PackageManager(
        "brew",
        install=("brew", "install"),
        needs_root=False,
        # brew's node formula bundles npm
        renames={"nodejs": "node", "npm": ""},
    ),
)


def detect_package_manager(host: Host) -> PackageManager | None:
    """Return the first available package manager, or None."""
    for manager in KNOWN_MANAGERS:
        if host.which(manager.name):
            return manager
    logger.debug("No supported package manager found")
    return None
