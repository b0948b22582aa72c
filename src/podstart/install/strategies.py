"""Install strategies — one object per way of getting a tool onto the host.

Each strategy's attempt() returns True on success and False on failure;
none of them raise for expected failures (missing package manager,
network error, non-zero exit).  The installer walks them in priority
order: OS package manager, release download, vendor script, npm.
"""

from __future__ import annotations

import abc
import logging
import os
import shutil
import stat
import tarfile
import tempfile
from pathlib import Path
from typing import TYPE_CHECKING

from ..tools import InstallScript, ReleaseArtifact, ReleaseSource, ToolDescriptor
from .privilege import Privilege, privilege_ladder

if TYPE_CHECKING:
    from .installer import ToolInstaller

logger = logging.getLogger(__name__)


def place_executable(src: Path, dest: Path) -> bool:
    """Copy *src* to *dest* as an executable via a partial file + rename.

    An interrupted copy leaves only ``.<name>.partial`` behind, never a
    truncated binary at *dest*.
    """
    partial = dest.with_name(f".{dest.name}.partial")
    try:
        dest.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(src, partial)
        partial.chmod(partial.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        os.replace(partial, dest)
    except OSError as e:
        logger.warning("Could not place %s at %s: %s", src.name, dest, e)
        partial.unlink(missing_ok=True)
        return False
    logger.info("Installed %s", dest)
    return True


def extract_member(archive: Path, name: str, out_path: Path) -> bool:
    """Extract the regular file *name* from a .tar.gz into *out_path*.

    Links are refused and members are copied by content only, never
    via tar.extract(), so archive paths cannot escape the temp dir.
    """
    try:
        with tarfile.open(archive, "r:gz") as tar:
            for member in tar.getmembers():
                if member.name != name and not member.name.endswith(f"/{name}"):
                    continue
                if member.issym() or member.islnk():
                    logger.warning("Refusing linked archive member %s", member.name)
                    return False
                if not member.isfile():
                    continue
                f_obj = tar.extractfile(member)
                if f_obj is None:
                    continue
                with open(out_path, "wb") as out:
                    shutil.copyfileobj(f_obj, out)
                return True
    except (tarfile.TarError, OSError) as e:
        logger.warning("Could not read archive %s: %s", archive.name, e)
        return False
    logger.warning("%s not found in %s", name, archive.name)
    return False


class InstallStrategy(abc.ABC):
    """One way of installing a tool."""

    label = "strategy"

    @abc.abstractmethod
    def attempt(self, tool: ToolDescriptor, installer: ToolInstaller) -> bool: ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.label}>"


class PackageManagerStrategy(InstallStrategy):
    """Install by name through the detected OS package manager."""

    label = "package manager"

    def __init__(self, package: str, *extra: str) -> None:
        self.package = package
        self.packages = (package, *extra)

    def attempt(self, tool: ToolDescriptor, installer: ToolInstaller) -> bool:
        host = installer.host
        manager = installer.package_manager()
        if manager is None:
            logger.warning("No supported package manager found to install %s", tool.name)
            return False

        rungs = privilege_ladder(host, unprivileged=not manager.needs_root, user_local=False)
        if not rungs:
            logger.warning("%s needs root or sudo; neither is available", manager.name)
            return False

        for rung in rungs:
            if manager.refresh and manager.name not in installer.refreshed:
                refreshed = host.run(
                    rung.wrap(manager.refresh),
                    timeout=installer.install_timeout,
                    interactive=rung.interactive,
                )
                if refreshed.ok:
                    installer.refreshed.add(manager.name)
            result = host.run(
                rung.wrap(manager.install_argv(*self.packages)),
                timeout=installer.install_timeout,
                interactive=rung.interactive,
            )
            if result.ok:
                return True
            logger.warning(
                "%s install %s failed (%s, exit %d): %s",
                manager.name,
                self.package,
                rung.value,
                result.returncode,
                result.stderr.strip(),
            )
        return False


class NpmStrategy(InstallStrategy):
    """Global npm package, with a ~/.local prefix as the last resort."""

    label = "npm"

    def __init__(self, package: str) -> None:
        self.package = package

    def attempt(self, tool: ToolDescriptor, installer: ToolInstaller) -> bool:
        host = installer.host
        if not host.which("npm"):
            logger.debug("npm not available for %s", tool.name)
            return False

        for rung in privilege_ladder(host):
            if rung is Privilege.USER_LOCAL:
                argv = ["npm", "install", "-g", "--prefix", str(installer.local_prefix), self.package]
            else:
                argv = rung.wrap(["npm", "install", "-g", self.package])
            result = host.run(argv, timeout=installer.install_timeout, interactive=rung.interactive)
            if result.ok:
                if rung is Privilege.USER_LOCAL:
                    installer.add_to_path(installer.local_bin_dir)
                return True
            logger.warning("npm install %s failed (%s): %s", self.package, rung.value, result.stderr.strip())
        return False


class ReleaseDownloadStrategy(InstallStrategy):
    """Download a prebuilt binary for the detected OS/arch."""

    label = "release download"

    def __init__(self, release: ReleaseSource) -> None:
        self.release = release

    def _resolve_version(self, installer: ToolInstaller) -> str:
        needs_version = any("{version}" in a.url for a in self.release.artifacts)
        if not needs_version or self.release.version_source is None:
            return ""
        return installer.client.fetch_latest_tag(self.release.version_source) or ""

    def attempt(self, tool: ToolDescriptor, installer: ToolInstaller) -> bool:
        system, machine = installer.platform
        version = self._resolve_version(installer)

        for artifact in self.release.artifacts:
            if "{version}" in artifact.url and not version:
                logger.info("%s: latest release tag unknown, skipping %s", tool.name, artifact.url)
                continue
            url = artifact.url_for(system, machine, version)
            if url is None:
                logger.warning("%s: no release artifact for %s/%s", tool.name, system, machine)
                continue
            with tempfile.TemporaryDirectory(prefix="podstart-") as tmp:
                binary = self._fetch(url, artifact, Path(tmp), installer)
                if binary is not None and self._place(binary, installer):
                    return True
        return False

    def _fetch(
        self,
        url: str,
        artifact: ReleaseArtifact,
        tmp: Path,
        installer: ToolInstaller,
    ) -> Path | None:
        download = tmp / "download"
        if not installer.client.download(url, download):
            return None
        binary = tmp / self.release.binary
        if artifact.archive:
            if not extract_member(download, artifact.member or self.release.binary, binary):
                return None
        else:
            download.rename(binary)
        binary.chmod(0o755)
        return binary

    def _place(self, binary: Path, installer: ToolInstaller) -> bool:
        name = self.release.binary
        if self.release.dest_dir is not None:
            return place_executable(binary, self.release.dest_dir / name)

        dest_dir = installer.system_bin_dir
        host = installer.host
        for rung in privilege_ladder(host):
            if rung is Privilege.USER:
                if os.access(dest_dir, os.W_OK) and place_executable(binary, dest_dir / name):
                    return True
                continue
            if rung is Privilege.USER_LOCAL:
                if place_executable(binary, installer.local_bin_dir / name):
                    installer.add_to_path(installer.local_bin_dir)
                    logger.info("%s installed to %s", name, installer.local_bin_dir)
                    return True
                continue
            result = host.run(
                rung.wrap(["install", "-m", "0755", str(binary), str(dest_dir / name)]),
                timeout=installer.install_timeout,
                interactive=rung.interactive,
            )
            if result.ok:
                return True
            logger.warning("%s: install into %s failed (%s)", name, dest_dir, rung.value)
        return False


class InstallScriptStrategy(InstallStrategy):
    """Fetch a vendor install script and run it with bash."""

    label = "install script"

    def __init__(self, script: InstallScript) -> None:
        self.script = script

    def _rungs(self, installer: ToolInstaller) -> list[Privilege]:
        if not self.script.escalate:
            return [Privilege.USER]
        return privilege_ladder(installer.host, user_local=self.script.user_local_args is not None)

    def attempt(self, tool: ToolDescriptor, installer: ToolInstaller) -> bool:
        text = installer.client.fetch_text(self.script.url)
        if not text:
            return False

        host = installer.host
        with tempfile.TemporaryDirectory(prefix="podstart-") as tmp:
            script_path = Path(tmp) / "install.sh"
            script_path.write_text(text, encoding="utf-8")
            # sudo'd bash must be able to read the script
            Path(tmp).chmod(0o755)
            script_path.chmod(0o644)

            for rung in self._rungs(installer):
                if rung is Privilege.USER_LOCAL:
                    assert self.script.user_local_args is not None
                    args = [
                        a.format(local_prefix=installer.local_prefix)
                        for a in self.script.user_local_args
                    ]
                    argv = ["bash", str(script_path), *args]
                else:
                    argv = rung.wrap(["bash", str(script_path), *self.script.args])
                result = host.run(argv, timeout=installer.install_timeout, interactive=rung.interactive)
                if result.ok:
                    if rung is Privilege.USER_LOCAL:
                        installer.add_to_path(installer.local_bin_dir)
                    return True
                logger.warning(
                    "%s install script failed (%s, exit %d)",
                    tool.name,
                    rung.value,
                    result.returncode,
                )
        return False
