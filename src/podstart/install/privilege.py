"""Privilege-escalation ladder for installs that write outside $HOME.

Rungs, tried in order until one succeeds:
  1. USER                 — run as the invoking user.
  2. SUDO_NONINTERACTIVE  — ``sudo -n`` (passwordless sudo only).
  3. SUDO                 — interactive ``sudo``; only offered on a TTY.
  4. USER_LOCAL           — install under ~/.local and extend PATH.

Root skips the sudo rungs, as does a host without sudo.
"""

from __future__ import annotations

import enum
from collections.abc import Sequence

from ..host import Host


class Privilege(enum.Enum):
    USER = "user"
    SUDO_NONINTERACTIVE = "sudo -n"
    SUDO = "sudo"
    USER_LOCAL = "user-local"

    @property
    def interactive(self) -> bool:
        return self is Privilege.SUDO

    def wrap(self, argv: Sequence[str]) -> list[str]:
        """Prefix *argv* with the escalation command for this rung."""
        if self is Privilege.SUDO_NONINTERACTIVE:
            return ["sudo", "-n", *argv]
        if self is Privilege.SUDO:
            return ["sudo", *argv]
        return list(argv)


def privilege_ladder(
    host: Host,
    *,
    unprivileged: bool = True,
    user_local: bool = True,
) -> list[Privilege]:
    """Applicable rungs for this host, in order."""
    rungs: list[Privilege] = []
    root = host.is_root()
    if unprivileged or root:
        rungs.append(Privilege.USER)
    if not root and host.which("sudo"):
        rungs.append(Privilege.SUDO_NONINTERACTIVE)
        if host.stdin_is_tty():
            rungs.append(Privilege.SUDO)
    if user_local:
        rungs.append(Privilege.USER_LOCAL)
    return rungs
