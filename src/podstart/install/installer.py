"""Tool Installer — first-time install (and in-place update) of one tool.

Strategies are built from the descriptor in priority order (OS package
manager, release download, vendor script, npm) and tried until one both
reports success and leaves the tool detectable by the presence check.

Key class: ToolInstaller.
"""

from __future__ import annotations

import logging
from pathlib import Path

from ..host import Host
from ..profile import ShellProfile
from ..releases import ReleaseClient
from ..tools import ToolDescriptor, detect_platform
from .package_manager import PackageManager, detect_package_manager
from .strategies import (
    InstallScriptStrategy,
    InstallStrategy,
    NpmStrategy,
    PackageManagerStrategy,
    ReleaseDownloadStrategy,
)

logger = logging.getLogger(__name__)

SYSTEM_BIN_DIR = Path("/usr/local/bin")

_UNSET = object()


class ToolInstaller:
    """Installs tools; shared state for one run (platform, refreshed indexes)."""

    def __init__(
        self,
        host: Host,
        client: ReleaseClient,
        *,
        local_prefix: Path | None = None,
        system_bin_dir: Path = SYSTEM_BIN_DIR,
        install_timeout: float = 600.0,
        profile: ShellProfile | None = None,
        platform: tuple[str, str] | None = None,
    ) -> None:
        self.host = host
        self.client = client
        self.local_prefix = local_prefix or Path.home() / ".local"
        self.system_bin_dir = system_bin_dir
        self.install_timeout = install_timeout
        self.profile = profile
        self.platform = platform or detect_platform()
        self.refreshed: set[str] = set()
        self._package_manager: object = _UNSET

    @property
    def local_bin_dir(self) -> Path:
        return self.local_prefix / "bin"

    def package_manager(self) -> PackageManager | None:
        """Detected package manager, looked up once per run."""
        if self._package_manager is _UNSET:
            self._package_manager = detect_package_manager(self.host)
        return self._package_manager  # type: ignore[return-value]

    def add_to_path(self, directory: Path) -> None:
        """Expose *directory* to this process and to future shells."""
        self.host.extend_path(directory)
        if self.profile is not None:
            self.profile.ensure_path_entry(directory)

    def strategies_for(self, tool: ToolDescriptor) -> list[InstallStrategy]:
        strategies: list[InstallStrategy] = []
        if tool.package:
            strategies.append(PackageManagerStrategy(tool.package, *tool.extra_packages))
        if tool.release is not None:
            strategies.append(ReleaseDownloadStrategy(tool.release))
        if tool.script is not None:
            strategies.append(InstallScriptStrategy(tool.script))
        if tool.npm_package:
            strategies.append(NpmStrategy(tool.npm_package))
        return strategies

    def install(self, tool: ToolDescriptor) -> bool:
        """Install (or overwrite in place) *tool*.

        Returns:
            True once the tool is detectable, False if every strategy failed.
        """
        strategies = self.strategies_for(tool)
        if not strategies:
            logger.warning("No install strategy defined for %s", tool.name)
            return False

        for strategy in strategies:
            logger.info("Installing %s via %s", tool.name, strategy.label)
            try:
                ok = strategy.attempt(tool, self)
            except OSError as e:
                logger.warning("%s via %s failed: %s", tool.name, strategy.label, e)
                ok = False
            if not ok:
                continue

            for directory in tool.path_dirs:
                self.add_to_path(directory)
            if self.host.check_presence(tool):
                logger.info("%s installed via %s", tool.name, strategy.label)
                return True
            logger.warning(
                "%s reported success but %s is still not found",
                strategy.label,
                tool.command,
            )

        logger.error("All install strategies failed for %s", tool.name)
        return False
