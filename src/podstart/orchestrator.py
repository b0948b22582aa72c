"""Workspace bootstrap orchestrator — the end-to-end run.

State machine:
  NOT_STARTED → CHECKING_PREREQS (tmux, git)
              → PROVISIONING_TOOLS (per tool: check → install | reconcile)
              → SUPERVISING_DAEMON
              → ALLOCATING_SESSION
              → LAUNCHING
              → ATTACHED
  with terminal failure states ABORTED (required tool unavailable) and
  ALLOCATION_FAILED (session pool exhausted).

Every step is idempotent: a second run on an unchanged host installs
nothing and only creates the new tmux session.

Key class: Bootstrap.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from pathlib import Path

from .daemon import DaemonHandle, DaemonSupervisor, code_server_daemon, mana_daemon
from .host import Host
from .install.installer import ToolInstaller
from .profile import ShellProfile
from .reconciler import Outcome, ToolReport, VersionReconciler
from .releases import ReleaseClient
from .sessions import SessionAllocator, SessionPoolExhausted
from .settings import BootstrapConfig
from .tmux_config import TmuxConfig
from .tmux_manager import SessionLauncher, TmuxManager
from .tools import ToolDescriptor, default_tools, find_tool

logger = logging.getLogger(__name__)

_GIT_SETTINGS = (
    ("--add", "safe.directory", "*"),
    ("init.defaultBranch", "main"),
)


class RunState(enum.Enum):
    NOT_STARTED = "not-started"
    CHECKING_PREREQS = "checking-prereqs"
    PROVISIONING_TOOLS = "provisioning-tools"
    SUPERVISING_DAEMON = "supervising-daemon"
    ALLOCATING_SESSION = "allocating-session"
    LAUNCHING = "launching"
    ATTACHED = "attached"
    ABORTED = "aborted"
    ALLOCATION_FAILED = "allocation-failed"


class ProvisioningAborted(RuntimeError):
    """A required tool is missing and could not be installed or updated."""

    def __init__(self, tool: str, reason: str) -> None:
        self.tool = tool
        self.reason = reason
        super().__init__(f"{tool}: {reason}")


class Bootstrap:
    """Runs the provisioning steps in order and launches the session."""

    def __init__(
        self,
        config: BootstrapConfig,
        host: Host,
        client: ReleaseClient,
        *,
        tools: tuple[ToolDescriptor, ...] | None = None,
        installer: ToolInstaller | None = None,
        supervisor: DaemonSupervisor | None = None,
        tmux: TmuxManager | None = None,
        echo: Callable[[str], None] = print,
    ) -> None:
        self.config = config
        self.host = host
        self.client = client
        self.tools = tools if tools is not None else default_tools(config.home)
        self.installer = installer or ToolInstaller(
            host,
            client,
            local_prefix=config.local_prefix,
            install_timeout=config.install_timeout,
            profile=ShellProfile(config.home),
        )
        self.reconciler = VersionReconciler(host, client, self.installer)
        self.supervisor = supervisor or DaemonSupervisor(
            host,
            ready_attempts=config.daemon_ready_attempts,
            ready_interval=config.daemon_ready_interval,
        )
        self.tmux_config = TmuxConfig(config.resolved_tmux_dir)
        self.tmux = tmux or TmuxManager(config_file=self.tmux_config.conf_path)
        self.echo = echo
        self.state = RunState.NOT_STARTED
        self.reports: list[ToolReport] = []

    def _enter(self, state: RunState) -> None:
        logger.debug("State %s -> %s", self.state.value, state.value)
        self.state = state

    # ------------------------------------------------------------------
    # Tools
    # ------------------------------------------------------------------

    def _selected_tools(self, prerequisite: bool) -> list[ToolDescriptor]:
        return [
            t
            for t in self.tools
            if t.prerequisite == prerequisite and t.name not in self.config.skip_tools
        ]

    def ensure_tool(self, tool: ToolDescriptor) -> ToolReport:
        """Check one tool and install or reconcile it. Does not raise."""
        report = self._provision(tool)
        if report.outcome is not Outcome.FAILED:
            self.expose(tool)
        return report

    def _provision(self, tool: ToolDescriptor) -> ToolReport:
        if tool.reconcilable:
            return self.reconciler.reconcile(tool)
        if self.host.check_presence(tool):
            return ToolReport(tool.name, Outcome.PRESENT)
        self.echo(f"[installing] {tool.name}...")
        if self.installer.install(tool):
            return ToolReport(tool.name, Outcome.INSTALLED)
        return ToolReport(tool.name, Outcome.FAILED, detail="installation failed")

    def expose(self, tool: ToolDescriptor) -> None:
        """Put the resolved executable's directory first on PATH if a bare
        command name would not reach it (tools found only at a known path).

        The tmux session inherits this process's PATH.
        """
        exe = self.host.resolve(tool)
        if exe is None or self.host.which(tool.command) == exe:
            return
        logger.info("Adding %s to PATH for %s", Path(exe).parent, tool.name)
        self.installer.add_to_path(Path(exe).parent)

    def _judge(self, tool: ToolDescriptor, report: ToolReport) -> None:
        """Report one tool's outcome; abort the run on a required failure."""
        self.reports.append(report)
        version = f" {report.version}" if report.version else ""
        if report.outcome in (Outcome.PRESENT, Outcome.UP_TO_DATE):
            self.echo(f"[ok] {tool.name}{version} already installed")
        elif report.outcome is Outcome.INSTALLED:
            self.echo(f"[ok] {tool.name}{version} installed")
        elif report.outcome is Outcome.UPDATED:
            self.echo(f"[ok] {tool.name} updated to{version}")
        elif report.outcome is Outcome.SKIPPED:
            self.echo(f"[warn] {tool.name}{version}: {report.detail}, skipping update check")
        elif tool.required:
            raise ProvisioningAborted(tool.name, report.detail)
        elif report.outcome is Outcome.UPDATE_FAILED:
            self.echo(f"[warn] {tool.name}: {report.detail}; continuing with{version}")
        else:
            self.echo(f"[warn] {tool.name}: {report.detail}; continuing without it")

    def check_prerequisites(self) -> None:
        self._enter(RunState.CHECKING_PREREQS)
        for tool in self._selected_tools(prerequisite=True):
            self._judge(tool, self.ensure_tool(tool))
        if self.config.configure_git:
            self.configure_git()

    def configure_git(self) -> None:
        """Apply global git defaults. Best-effort."""
        for setting in _GIT_SETTINGS:
            argv = ["git", "config", "--global", *setting]
            if setting[0] == "--add" and self._git_has(setting[1], setting[2]):
                continue
            result = self.host.run(argv, timeout=self.config.probe_timeout)
            if not result.ok:
                logger.warning("git config %s failed: %s", " ".join(setting), result.stderr.strip())

    def _git_has(self, key: str, value: str) -> bool:
        result = self.host.run(
            ["git", "config", "--global", "--get-all", key],
            timeout=self.config.probe_timeout,
        )
        return result.ok and value in result.stdout.splitlines()

    def provision_tools(self) -> None:
        self._enter(RunState.PROVISIONING_TOOLS)
        for tool in self._selected_tools(prerequisite=False):
            self._judge(tool, self.ensure_tool(tool))
        self.install_editor_extensions()
        self.setup_tmux()

    def install_editor_extensions(self) -> list[str]:
        """Install missing code-server extensions. Best-effort.

        Returns the extensions that failed to install.
        """
        exe = self._resolve_selected("code-server")
        wanted = self.config.code_server_extensions
        if exe is None or not wanted:
            return []
        listed = self.host.run([exe, "--list-extensions"], timeout=self.config.probe_timeout)
        installed = {line.strip().lower() for line in listed.stdout.splitlines()} if listed.ok else set()
        failed: list[str] = []
        for ext in wanted:
            if ext.lower() in installed:
                continue
            logger.info("Installing code-server extension %s", ext)
            result = self.host.run(
                [exe, "--install-extension", ext],
                timeout=self.config.install_timeout,
            )
            if not result.ok:
                logger.warning("code-server extension %s: %s", ext, result.stderr.strip())
                self.echo(f"[warn] code-server extension {ext} failed to install")
                failed.append(ext)
        return failed

    def setup_tmux(self) -> None:
        cfg = self.tmux_config
        cfg.ensure_dirs()
        cfg.ensure_config()
        if cfg.ensure_plugin_manager(self.host, timeout=self.config.install_timeout):
            cfg.install_plugins(self.host, timeout=self.config.install_timeout)
        else:
            self.echo("[warn] tmux plugin manager unavailable; continuing without plugins")

    # ------------------------------------------------------------------
    # Daemons
    # ------------------------------------------------------------------

    def daemons(self) -> list[DaemonHandle]:
        handles: list[DaemonHandle] = []
        mana_bin = self._resolve_selected("mana")
        if mana_bin:
            handles.append(mana_daemon(Path(mana_bin)))
        code_server_bin = self._resolve_selected("code-server")
        if self.config.code_server_autostart and code_server_bin:
            handles.append(
                code_server_daemon(
                    self.config.code_server_port,
                    self.config.code_server_log,
                    binary=code_server_bin,
                )
            )
        return handles

    def _resolve_selected(self, name: str) -> str | None:
        """Executable path of a tool that is in the catalogue, not skipped, and present."""
        tool = find_tool(self.tools, name)
        if tool is None or tool.name in self.config.skip_tools:
            return None
        return self.host.resolve(tool)

    def supervise_daemons(self) -> None:
        self._enter(RunState.SUPERVISING_DAEMON)
        for daemon in self.daemons():
            if self.supervisor.ensure_running(daemon):
                self.echo(f"[ok] {daemon.name} daemon running")
            else:
                self.echo(f"[warn] {daemon.name} daemon failed to start; continuing without it")

    # ------------------------------------------------------------------
    # Session
    # ------------------------------------------------------------------

    def allocate_session(self) -> str:
        self._enter(RunState.ALLOCATING_SESSION)
        allocator = SessionAllocator(self.config.session_names, self.tmux.has_session)
        return allocator.allocate()

    def launch(self, name: str, attach: bool = True) -> int:
        self._enter(RunState.LAUNCHING)
        self.echo(f"Creating tmux session: {name}")
        launcher = SessionLauncher(self.tmux, self.config.startup_command)
        if attach:
            self.echo(f"Attaching to session: {name}")
        rc = launcher.launch(name, self.config.workspace_dir, attach=attach)
        self._enter(RunState.ATTACHED)
        if not attach:
            self.echo(f"Session {name} is running. Attach with: tmux attach -t {name}")
        return rc

    def provision(self) -> list[ToolReport]:
        """Prerequisites, tools, and daemons; no session is created."""
        try:
            self.check_prerequisites()
            self.provision_tools()
        except ProvisioningAborted:
            self._enter(RunState.ABORTED)
            raise
        self.supervise_daemons()
        return self.reports

    def run(self, attach: bool | None = None) -> int:
        """Full bootstrap. Returns the attach client's exit status.

        Raises:
            ProvisioningAborted: a required tool is unavailable.
            SessionPoolExhausted: every session name is live.
        """
        self.provision()
        try:
            name = self.allocate_session()
        except SessionPoolExhausted:
            self._enter(RunState.ALLOCATION_FAILED)
            raise
        return self.launch(name, attach=self.config.attach if attach is None else attach)

    # ------------------------------------------------------------------
    # Read-only report
    # ------------------------------------------------------------------

    def status(self) -> list[str]:
        """Describe tools, daemons, and sessions without changing anything."""
        lines: list[str] = []
        for tool in self.tools:
            if tool.name in self.config.skip_tools:
                lines.append(f"{tool.name:<12} skipped")
                continue
            if not self.host.check_presence(tool):
                lines.append(f"{tool.name:<12} missing")
                continue
            version = self.host.query_version(tool) if tool.version_args else None
            lines.append(f"{tool.name:<12} installed{f' {version}' if version else ''}")
        for daemon in self.daemons():
            running = self.supervisor.is_running(daemon)
            lines.append(f"{daemon.name + ' daemon':<12} {'running' if running else 'stopped'}")
        sessions = self.tmux.list_session_names()
        lines.append(f"sessions     {', '.join(sessions) if sessions else 'none'}")
        return lines
