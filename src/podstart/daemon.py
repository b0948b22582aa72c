"""Daemon Supervisor — keep long-running helper processes alive.

Start-if-not-running only: if the status query says the daemon is down,
issue its start command and poll the status a bounded number of times.
Concurrent podstart runs may both start a daemon; no lock is taken.
A daemon that fails to start is logged and the run carries on without it.

Key entities: DaemonHandle, DaemonSupervisor, default_daemons().
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from .host import Host

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DaemonHandle:
    """A named singleton process, identified by its status query."""

    name: str
    status_argv: tuple[str, ...]
    start_argv: tuple[str, ...]
    # True: start_argv runs in the foreground forever, so spawn it detached.
    # False: start_argv forks the daemon itself and returns.
    detach: bool = False
    log_path: Path | None = None


def mana_daemon(mana_bin: Path) -> DaemonHandle:
    return DaemonHandle(
        name="mana",
        status_argv=(str(mana_bin), "daemon", "status"),
        start_argv=(str(mana_bin), "daemon", "start"),
    )


def code_server_daemon(port: int, log_path: Path, binary: str = "code-server") -> DaemonHandle:
    return DaemonHandle(
        name="code-server",
        status_argv=("pgrep", "-x", "code-server"),
        start_argv=(
            binary,
            "--auth",
            "none",
            "--port",
            str(port),
            "--host",
            "0.0.0.0",
        ),
        detach=True,
        log_path=log_path,
    )


class DaemonSupervisor:
    """Ensures daemons are running; never raises for start failures."""

    def __init__(
        self,
        host: Host,
        *,
        ready_attempts: int = 5,
        ready_interval: float = 1.0,
        start_timeout: float = 30.0,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.host = host
        # Always poll at least once
        self.ready_attempts = max(1, ready_attempts)
        self.ready_interval = ready_interval
        self.start_timeout = start_timeout
        self._sleep = sleep

    def is_running(self, daemon: DaemonHandle) -> bool:
        return self.host.query_daemon_status(daemon)

    def ensure_running(self, daemon: DaemonHandle) -> bool:
        """Start *daemon* unless its status query reports it running.

        Returns:
            True if the daemon is (now) running, False otherwise.
        """
        if self.is_running(daemon):
            logger.info("%s daemon is already running", daemon.name)
            return True

        logger.info("Starting %s daemon...", daemon.name)
        if daemon.detach:
            if self.host.spawn(daemon.start_argv, daemon.log_path) is None:
                logger.warning("Could not launch %s daemon", daemon.name)
                return False
        else:
            result = self.host.run(daemon.start_argv, timeout=self.start_timeout)
            if not result.ok:
                logger.warning(
                    "%s daemon start exited %d: %s",
                    daemon.name,
                    result.returncode,
                    result.stderr.strip(),
                )
                return False

        for attempt in range(1, self.ready_attempts + 1):
            if self.is_running(daemon):
                logger.info("%s daemon started", daemon.name)
                return True
            if attempt < self.ready_attempts:
                self._sleep(self.ready_interval)

        logger.warning(
            "%s daemon did not report running after %d checks",
            daemon.name,
            self.ready_attempts,
        )
        return False
