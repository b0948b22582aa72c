"""Version Reconciler — converge a tool on its latest release.

Decision table for a reconcilable tool:
  - absent                      → install (first-time install, not an update)
  - installed version unknown   → skip, warn
  - latest unknown/unparsable   → skip, log current version
  - installed < latest          → update through the regular install path
  - installed >= latest         → no-op

Comparison is on numeric (major, minor, patch) triples only.

Key entities: Outcome, ToolReport, VersionReconciler.
"""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass

from .host import Host
from .install.installer import ToolInstaller
from .releases import ReleaseClient
from .tools import ToolDescriptor
from .versions import Version, needs_update

logger = logging.getLogger(__name__)


class Outcome(enum.Enum):
    PRESENT = "present"  # found, no version tracking
    INSTALLED = "installed"
    UP_TO_DATE = "up-to-date"
    UPDATED = "updated"
    SKIPPED = "skipped"  # version check could not be completed
    FAILED = "failed"  # absent and could not be installed
    UPDATE_FAILED = "update-failed"  # still present, but stale


@dataclass
class ToolReport:
    """Result of provisioning one tool."""

    tool: str
    outcome: Outcome
    version: Version | None = None
    latest: Version | None = None
    detail: str = ""

    @property
    def failed(self) -> bool:
        return self.outcome in (Outcome.FAILED, Outcome.UPDATE_FAILED)


class VersionReconciler:
    """Compares installed vs. latest versions and reinstalls when stale."""

    def __init__(self, host: Host, client: ReleaseClient, installer: ToolInstaller) -> None:
        self.host = host
        self.client = client
        self.installer = installer

    def reconcile(self, tool: ToolDescriptor) -> ToolReport:
        if tool.latest is None:
            raise ValueError(f"{tool.name} has no latest-version source")

        if not self.host.check_presence(tool):
            logger.info("%s not found, installing", tool.name)
            if not self.installer.install(tool):
                return ToolReport(tool.name, Outcome.FAILED, detail="installation failed")
            return ToolReport(tool.name, Outcome.INSTALLED, version=self.host.query_version(tool))

        installed = self.host.query_version(tool)
        if installed is None:
            logger.warning("Could not determine installed %s version, skipping update check", tool.name)
            return ToolReport(tool.name, Outcome.SKIPPED, detail="installed version unknown")

        latest = self.client.fetch_latest_version(tool.latest)
        if latest is None:
            logger.warning(
                "Could not fetch latest %s version, skipping update check (current: %s)",
                tool.name,
                installed,
            )
            return ToolReport(
                tool.name,
                Outcome.SKIPPED,
                version=installed,
                detail="latest version unavailable",
            )

        if not needs_update(installed, latest):
            logger.info("%s is up to date: %s", tool.name, installed)
            return ToolReport(tool.name, Outcome.UP_TO_DATE, version=installed, latest=latest)

        logger.info("%s update available: %s -> %s", tool.name, installed, latest)
        if not self.installer.install(tool):
            return ToolReport(
                tool.name,
                Outcome.UPDATE_FAILED,
                version=installed,
                latest=latest,
                detail=f"update to {latest} failed",
            )

        new_version = self.host.query_version(tool)
        if new_version is not None and needs_update(new_version, latest):
            logger.warning("%s still reports %s after update to %s", tool.name, new_version, latest)
        return ToolReport(tool.name, Outcome.UPDATED, version=new_version, latest=latest)
