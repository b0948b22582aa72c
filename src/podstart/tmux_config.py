"""Generated tmux configuration and plugin manager (TPM) setup.

Layout under the workspace's tmux dir:
  tmux.conf            generated config (rewritten only when it changes)
  plugins/tpm/         TPM checkout
  plugins/<plugin>/    plugins installed by TPM
  resurrect/           tmux-resurrect save files

Key class: TmuxConfig.
"""

from __future__ import annotations

import logging
import shutil
from pathlib import Path

from .host import Host
from .utils import write_if_changed

logger = logging.getLogger(__name__)

TPM_REPO = "https://github.com/tmux-plugins/tpm"

DEFAULT_PLUGINS: tuple[str, ...] = (
    "tmux-plugins/tpm",
    "tmux-plugins/tmux-resurrect",
    "tmux-plugins/tmux-continuum",
)


def render_config(tmux_dir: Path, plugins: tuple[str, ...] = DEFAULT_PLUGINS) -> str:
    """Render tmux.conf for a tmux dir. Pure; same input, same text."""
    plugins_dir = tmux_dir / "plugins"
    plugin_lines = "\n".join(f"set -g @plugin '{p}'" for p in plugins)
    plugin_list = " ".join(plugins)
    return f"""\
# Generated by podstart; local edits are overwritten on the next run.
set -g history-limit 10000
set -g mouse on
set -g default-terminal "screen-256color"

# Plugins
set-environment -g TMUX_PLUGIN_MANAGER_PATH '{plugins_dir}/'
{plugin_lines}
# Read by TPM scripts run outside a session (install_plugins)
set -g @tpm_plugins '{plugin_list}'

# Plugin settings
set -g @continuum-restore 'on'
set -g @continuum-save-interval '15'
set -g @resurrect-capture-pane-contents 'on'
set -g @resurrect-dir '{tmux_dir / "resurrect"}'

# Initialize TPM (keep at bottom)
run-shell '{plugins_dir / "tpm" / "tpm"}'
"""


class TmuxConfig:
    """Paths and idempotent setup for the generated tmux configuration."""

    def __init__(self, tmux_dir: Path, plugins: tuple[str, ...] = DEFAULT_PLUGINS) -> None:
        self.tmux_dir = tmux_dir
        self.plugins = plugins
        self.conf_path = tmux_dir / "tmux.conf"
        self.plugins_dir = tmux_dir / "plugins"
        self.resurrect_dir = tmux_dir / "resurrect"
        self.tpm_dir = self.plugins_dir / "tpm"

    def ensure_dirs(self) -> None:
        self.plugins_dir.mkdir(parents=True, exist_ok=True)
        self.resurrect_dir.mkdir(parents=True, exist_ok=True)

    def ensure_config(self) -> bool:
        """Write tmux.conf if missing or stale. Returns True if written."""
        changed = write_if_changed(self.conf_path, render_config(self.tmux_dir, self.plugins))
        if changed:
            logger.info("Wrote %s", self.conf_path)
        return changed

    def tpm_installed(self) -> bool:
        return (self.tpm_dir / "tpm").is_file()

    def ensure_plugin_manager(self, host: Host, timeout: float = 120.0) -> bool:
        """Clone TPM unless a complete checkout is already present.

        A directory left by an interrupted clone is removed first.
        """
        if self.tpm_installed():
            return True
        if self.tpm_dir.exists():
            logger.warning("Removing incomplete TPM checkout at %s", self.tpm_dir)
            shutil.rmtree(self.tpm_dir, ignore_errors=True)

        logger.info("Installing Tmux Plugin Manager...")
        self.plugins_dir.mkdir(parents=True, exist_ok=True)
        result = host.run(
            ["git", "clone", "--depth", "1", TPM_REPO, str(self.tpm_dir)],
            timeout=timeout,
        )
        if not result.ok:
            logger.warning("TPM clone failed: %s", result.stderr.strip())
            return False
        return True

    def install_plugins(self, host: Host, timeout: float = 300.0) -> bool:
        """Run TPM's install_plugins script inside a tmux server that has
        loaded tmux.conf, so TPM sees this config's plugin list. Best-effort.
        """
        script = self.tpm_dir / "bin" / "install_plugins"
        if not script.is_file():
            logger.debug("TPM install_plugins not found at %s", script)
            return False
        conf = str(self.conf_path)
        argv = [
            "tmux", "-f", conf, "start-server", ";",
            "source-file", conf, ";",
            "run-shell", str(script),
        ]
        result = host.run(argv, timeout=timeout)
        if not result.ok:
            logger.warning("tmux plugin install failed: %s", result.stderr.strip())
            return False
        return True
