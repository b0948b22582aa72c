"""Host capability seam — every query about the machine goes through here.

Presence checks, version queries, daemon status, and command execution
are methods on a Host.  ShellHost implements them by shelling out; tests
inject an in-memory fake instead of touching real package managers.

Key classes: Host (abstract), ShellHost, CommandResult.
"""

from __future__ import annotations

import abc
import logging
import os
import shutil
import subprocess
import sys
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from .versions import Version, parse_version

if TYPE_CHECKING:
    from .daemon import DaemonHandle
    from .tools import ToolDescriptor

logger = logging.getLogger(__name__)

# Conventional exit codes for "not found" and "timed out"
EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124


@dataclass
class CommandResult:
    """Outcome of a host command."""

    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined (version banners use either)."""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class Host(abc.ABC):
    """Capability interface over the host's process table and filesystem."""

    @abc.abstractmethod
    def check_presence(self, tool: ToolDescriptor) -> bool:
        """True if the tool's executable resolves. Never raises."""

    @abc.abstractmethod
    def resolve(self, tool: ToolDescriptor) -> str | None:
        """Path to the tool's executable, or None if absent."""

    @abc.abstractmethod
    def query_version(self, tool: ToolDescriptor) -> Version | None:
        """Installed version, or None if absent/unparsable."""

    @abc.abstractmethod
    def query_daemon_status(self, daemon: DaemonHandle) -> bool:
        """True if the daemon's status query reports running."""

    @abc.abstractmethod
    def which(self, command: str) -> str | None: ...

    @abc.abstractmethod
    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        input: str | None = None,
        interactive: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult: ...

    @abc.abstractmethod
    def spawn(self, argv: Sequence[str], log_path: Path | None = None) -> int | None:
        """Start a detached background process; return its PID or None."""

    @abc.abstractmethod
    def extend_path(self, directory: Path) -> None:
        """Make *directory* visible to later presence checks in this process."""

    def is_root(self) -> bool:
        return hasattr(os, "geteuid") and os.geteuid() == 0

    def stdin_is_tty(self) -> bool:
        try:
            return sys.stdin.isatty()
        except (AttributeError, ValueError):
            return False


def _is_executable(path: Path) -> bool:
    return path.is_file() and os.access(path, os.X_OK)


class ShellHost(Host):
    """Host implementation backed by subprocess and shutil."""

    def __init__(self, probe_timeout: float = 10.0) -> None:
        self.probe_timeout = probe_timeout

    def resolve(self, tool: ToolDescriptor) -> str | None:
        """Path to the tool's executable: PATH first, then known install paths."""
        if tool.path_lookup:
            found = self.which(tool.command)
            if found:
                return found
        for candidate in tool.known_paths:
            if _is_executable(candidate):
                return str(candidate)
        return None

    def check_presence(self, tool: ToolDescriptor) -> bool:
        return self.resolve(tool) is not None

    def query_version(self, tool: ToolDescriptor) -> Version | None:
        if tool.version_args is None:
            return None
        exe = self.resolve(tool)
        if exe is None:
            return None
        result = self.run([exe, *tool.version_args], timeout=self.probe_timeout)
        if not result.ok:
            logger.debug("%s version query exited %d", tool.name, result.returncode)
        return parse_version(result.output)

    def query_daemon_status(self, daemon: DaemonHandle) -> bool:
        return self.run(daemon.status_argv, timeout=self.probe_timeout).ok

    def which(self, command: str) -> str | None:
        # Re-reads os.environ["PATH"] on every call, so extend_path() is
        # picked up without a new shell.
        return shutil.which(command)

    def run(
        self,
        argv: Sequence[str],
        *,
        timeout: float | None = None,
        input: str | None = None,
        interactive: bool = False,
        cwd: Path | None = None,
    ) -> CommandResult:
        argv = [str(a) for a in argv]
        logger.debug("Running: %s", " ".join(argv))
        try:
            if interactive:
                # Inherit the terminal so sudo can prompt for a password
                proc = subprocess.run(argv, timeout=timeout, cwd=cwd)
                return CommandResult(proc.returncode)
            proc = subprocess.run(
                argv,
                capture_output=True,
                text=True,
                input=input,
                timeout=timeout,
                cwd=cwd,
            )
            return CommandResult(proc.returncode, proc.stdout, proc.stderr)
        except FileNotFoundError as e:
            return CommandResult(EXIT_NOT_FOUND, "", str(e))
        except subprocess.TimeoutExpired:
            logger.warning("Command timed out after %ss: %s", timeout, argv[0])
            return CommandResult(EXIT_TIMEOUT, "", f"timed out after {timeout}s")
        except OSError as e:
            logger.warning("Failed to run %s: %s", argv[0], e)
            return CommandResult(1, "", str(e))

    def spawn(self, argv: Sequence[str], log_path: Path | None = None) -> int | None:
        argv = [str(a) for a in argv]
        try:
            if log_path is not None:
                log_path.parent.mkdir(parents=True, exist_ok=True)
                with open(log_path, "ab") as log:
                    proc = subprocess.Popen(
                        argv,
                        stdin=subprocess.DEVNULL,
                        stdout=log,
                        stderr=subprocess.STDOUT,
                        start_new_session=True,
                    )
            else:
                proc = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=subprocess.DEVNULL,
                    stderr=subprocess.DEVNULL,
                    start_new_session=True,
                )
        except OSError as e:
            logger.warning("Failed to start %s: %s", argv[0], e)
            return None
        logger.debug("Spawned %s (PID %d)", argv[0], proc.pid)
        return proc.pid

    def extend_path(self, directory: Path) -> None:
        entries = os.environ.get("PATH", "").split(os.pathsep)
        if str(directory) in entries:
            return
        os.environ["PATH"] = os.pathsep.join([str(directory), *filter(None, entries)])
        logger.debug("Prepended %s to PATH", directory)
