"""Tmux session management via libtmux, plus the Session Launcher.

TmuxManager wraps one tmux server (started with the generated config):
  - has_session / list_session_names: discover live sessions.
  - reload_config: source the generated config into a running server.
  - create_session / send_startup_command: build a detached session.
  - attach: hand the caller's terminal to a session (blocking).

SessionLauncher strings those together for a new workspace session.
"""

from __future__ import annotations

import logging
import os
import subprocess
from pathlib import Path

import libtmux
from libtmux import exc as tmux_exc

logger = logging.getLogger(__name__)


class TmuxManager:
    """Manages tmux sessions for Claude Code workspaces."""

    def __init__(self, config_file: Path | None = None, tmux_binary: str = "tmux"):
        """Initialize tmux manager.

        Args:
            config_file: Config passed as ``-f`` when the server starts.
            tmux_binary: tmux executable used for attach/switch.
        """
        self.config_file = config_file
        self.tmux_binary = tmux_binary
        self._server: libtmux.Server | None = None

    @property
    def server(self) -> libtmux.Server:
        """Get or create tmux server connection."""
        if self._server is None:
            self._server = libtmux.Server(
                config_file=str(self.config_file) if self.config_file else None
            )
        return self._server

    def has_session(self, name: str) -> bool:
        """True if a session with exactly this name is live."""
        try:
            return self.server.has_session(name)
        except tmux_exc.LibTmuxException as e:
            logger.debug("has-session %s failed: %s", name, e)
            return False

    def list_session_names(self) -> list[str]:
        try:
            return [s.session_name or "" for s in self.server.sessions]
        except tmux_exc.LibTmuxException as e:
            logger.debug("list-sessions failed: %s", e)
            return []

    def has_live_sessions(self) -> bool:
        return bool(self.list_session_names())

    def reload_config(self) -> bool:
        """Source the config into the running server so open windows pick it up."""
        if self.config_file is None:
            return False
        try:
            result = self.server.cmd("source-file", str(self.config_file))
        except tmux_exc.LibTmuxException as e:
            logger.warning("Failed to reload tmux config: %s", e)
            return False
        if result.stderr:
            logger.warning("Failed to reload tmux config: %s", " ".join(result.stderr))
            return False
        logger.info("Reloaded tmux config from %s", self.config_file)
        return True

    def create_session(self, name: str, start_directory: Path) -> libtmux.Session:
        """Create a detached session rooted at *start_directory*."""
        session = self.server.new_session(
            session_name=name,
            start_directory=str(start_directory),
            attach=False,
        )
        logger.info("Created tmux session '%s' at %s", name, start_directory)
        return session

    def send_startup_command(self, session: libtmux.Session, command: str) -> bool:
        """Type *command* into the session's active pane and press Enter."""
        window = session.active_window
        pane = window.active_pane if window else None
        if pane is None:
            logger.error("No active pane in session %s", session.session_name)
            return False
        pane.send_keys(command, enter=True)
        return True

    def attach_argv(self, name: str) -> list[str]:
        argv = [self.tmux_binary]
        if self.config_file is not None:
            argv += ["-f", str(self.config_file)]
        # Already inside tmux: switch the client instead of nesting
        if os.environ.get("TMUX"):
            argv += ["switch-client", "-t", name]
        else:
            argv += ["attach-session", "-t", name]
        return argv

    def attach(self, name: str) -> int:
        """Attach the caller's terminal; returns when the client detaches."""
        return subprocess.run(self.attach_argv(name)).returncode


class SessionLauncher:
    """Creates a session, starts the coding agent in it, and attaches."""

    def __init__(self, tmux: TmuxManager, startup_command: str) -> None:
        self.tmux = tmux
        self.startup_command = startup_command

    def launch(self, name: str, work_dir: Path, attach: bool = True) -> int:
        """Launch session *name*.

        Returns:
            The attach client's exit status (0 when not attaching).
        """
        if self.tmux.has_live_sessions():
            self.tmux.reload_config()

        session = self.tmux.create_session(name, work_dir)
        if not self.tmux.send_startup_command(session, self.startup_command):
            raise RuntimeError(f"Could not start '{self.startup_command}' in session {name}")

        if not attach:
            return 0
        logger.info("Attaching to session %s", name)
        return self.tmux.attach(name)
